"""
Field extraction from a loaded product page.

Each output field is resolved by a SelectorChain: an ordered list of
strategies, each of which either returns a non-empty normalized string or
None. The first hit wins and later strategies are not evaluated. A strategy
that raises (stale handle, detached frame) counts as a miss for that
strategy only.

Everything here talks to the page through a handful of Playwright calls
(`query_selector`, `query_selector_all`, `wait_for_selector`,
`text_content`, `get_attribute`, `evaluate`), so chains can be exercised
against the fakes in `asin_scraper.testing`.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Sequence

logger = logging.getLogger(__name__)

_INVISIBLE = re.compile(r"[\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff\x00-\x08\x0e-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")

BSR_LABEL = "best sellers rank"


def normalize_text(value: str | None) -> str | None:
    """
    Strip bidi/control marks, collapse whitespace and trim.
    Returns None when nothing is left.
    """
    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", _INVISIBLE.sub("", value)).strip()
    return cleaned or None


def normalize_label(value: str | None) -> str | None:
    """normalize_text plus removal of trailing colons ("Brand :" -> "Brand")."""
    cleaned = normalize_text(value)
    if cleaned is None:
        return None
    return cleaned.rstrip(":").strip() or None


class ExtractionStrategy(ABC):
    """One way of reading a value out of a page or element."""

    @abstractmethod
    async def extract(self, root: Any) -> str | None:
        ...


class TextOf(ExtractionStrategy):
    def __init__(self, selector: str):
        self.selector = selector

    async def extract(self, root: Any) -> str | None:
        el = await root.query_selector(self.selector)
        if el is None:
            return None
        return normalize_text(await el.text_content())

    def __repr__(self) -> str:
        return f"TextOf({self.selector!r})"


class AttributeOf(ExtractionStrategy):
    def __init__(self, selector: str, attribute: str):
        self.selector = selector
        self.attribute = attribute

    async def extract(self, root: Any) -> str | None:
        el = await root.query_selector(self.selector)
        if el is None:
            return None
        return normalize_text(await el.get_attribute(self.attribute))

    def __repr__(self) -> str:
        return f"AttributeOf({self.selector!r}, {self.attribute!r})"


class SelectorChain:
    def __init__(self, name: str, strategies: Sequence[ExtractionStrategy]):
        self.name = name
        self.strategies = tuple(strategies)

    async def resolve(self, root: Any) -> str | None:
        for strategy in self.strategies:
            try:
                value = await strategy.extract(root)
            except Exception as e:
                logger.debug("%s: %r raised %s: %s", self.name, strategy, type(e).__name__, e)
                continue
            if value:
                return value
        return None


def text_chain(name: str, *selectors: str) -> SelectorChain:
    return SelectorChain(name, [TextOf(s) for s in selectors])


# Ordered most specific first. Amazon keeps several layouts alive at once.
FIELD_CHAINS: dict[str, SelectorChain] = {
    "title": text_chain(
        "title",
        "#productTitle",
        "#titleSection #title",
        "#ebooksProductTitle",
        "h1.a-size-large.a-spacing-none",
    ),
    "price": text_chain(
        "price",
        "#priceblock_ourprice",
        "#priceblock_dealprice",
        "span.a-size-medium.a-color-price.offer-price.a-text-normal",
        "span.a-price > span.a-offscreen",
        "#corePriceDisplay_desktop_feature_div .a-offscreen",
    ),
    "rating": SelectorChain("rating", [
        TextOf('span[data-hook="rating-out-of-text"]'),
        AttributeOf("span#acrPopover", "title"),
        TextOf("i.a-icon-star span"),
        TextOf("span#acrPopover"),
    ]),
    "review_count": text_chain(
        "review_count",
        "#acrCustomerReviewText",
        'span[data-hook="total-review-count"]',
        "#reviewsMedley .a-size-base",
    ),
    "image": SelectorChain("image", [
        AttributeOf("#landingImage", "src"),
        AttributeOf("#imgTagWrapperId img", "src"),
        AttributeOf("#imgTagWrapperId img", "data-old-hires"),
    ]),
    "availability": text_chain(
        "availability",
        "#availability .a-color-state",
        "#availability .a-color-success",
        "#availability",
    ),
    "product_description": text_chain(
        "product_description",
        "#productDescription",
        "#bookDescription_feature_div",
        "#productDescription_feature_div",
    ),
}

BULLET_CONTAINERS = ("#feature-bullets ul", "#featurebullets_feature_div ul")

# Shape (a): one <li> per entry, bold key span followed by a value span.
DETAIL_LIST_ENTRIES = ("#detailBullets_feature_div li",)
DETAIL_LIST_KEY = "span.a-text-bold"
DETAIL_LIST_VALUE = "span.a-text-bold + span"

# Shape (b): two-column tables.
DETAIL_TABLE_ROWS = (
    "#productDetails_detailBullets_sections1 tr",
    "#productDetails_techSpec_section_1 tr",
    "#prodDetails table tr",
)


async def _safe_text(el: Any) -> str | None:
    if el is None:
        return None
    try:
        return await el.text_content()
    except Exception as e:
        logger.debug("text_content failed: %s", e)
        return None


async def _safe_all(root: Any, selector: str) -> list:
    try:
        return await root.query_selector_all(selector)
    except Exception as e:
        logger.debug("query_selector_all(%r) failed: %s", selector, e)
        return []


async def _safe_one(root: Any, selector: str) -> Any:
    try:
        return await root.query_selector(selector)
    except Exception as e:
        logger.debug("query_selector(%r) failed: %s", selector, e)
        return None


def best_sellers_rank(attributes: dict[str, str] | None) -> str | None:
    """
    Derive the BSR from the attribute table.

    The first key mentioning "Best Sellers Rank" is used. Any text after the
    label inside the key is kept in front of the value (some layouts render
    the rank inside the label cell), then everything from the first "(" on
    is dropped.
    """
    if not attributes:
        return None
    for key, value in attributes.items():
        lowered = key.lower()
        idx = lowered.find(BSR_LABEL)
        if idx < 0:
            continue
        remainder = key[idx + len(BSR_LABEL):].lstrip(" :")
        combined = f"{remainder} {value or ''}"
        return normalize_text(combined.split("(", 1)[0])
    return None


class FieldExtractor:
    """
    Runs every field chain against the loaded page and returns a dict of
    ExtractionResult field values. Missing fields come back as None; this
    method does not raise for anything a single field does.
    """

    def __init__(self, bullet_wait_ms: int = 2000, chains: dict[str, SelectorChain] | None = None):
        self.bullet_wait_ms = bullet_wait_ms
        self.chains = chains if chains is not None else FIELD_CHAINS

    async def extract(self, page: Any) -> dict:
        fields: dict = {}
        for name, chain in self.chains.items():
            fields[name] = await chain.resolve(page)

        fields["bullet_points"] = await self.bullet_points(page)

        await self._reveal_details(page)
        attributes = await self.attribute_table(page)
        fields["attribute_table"] = attributes
        fields["best_seller_rank"] = best_sellers_rank(attributes)
        return fields

    async def bullet_points(self, page: Any) -> list[str] | None:
        try:
            await page.wait_for_selector(", ".join(BULLET_CONTAINERS), timeout=self.bullet_wait_ms)
        except Exception:
            return None

        for container in BULLET_CONTAINERS:
            items = await _safe_all(page, f"{container} li")
            if not items:
                continue
            bullets = []
            for item in items:
                text = normalize_text(await _safe_text(item))
                if text:
                    bullets.append(text)
            return bullets or None
        return None

    async def attribute_table(self, page: Any) -> dict[str, str] | None:
        table = await self._detail_list(page)
        if not table:
            table = await self._detail_rows(page)
        return table or None

    async def _detail_list(self, page: Any) -> dict[str, str]:
        table: dict[str, str] = {}
        for selector in DETAIL_LIST_ENTRIES:
            for entry in await _safe_all(page, selector):
                raw_key = await _safe_text(await _safe_one(entry, DETAIL_LIST_KEY))
                key = normalize_label(raw_key)
                if not key:
                    continue
                value = normalize_text(await _safe_text(await _safe_one(entry, DETAIL_LIST_VALUE)))
                if value is None:
                    # BSR entries put the rank as bare text after the key
                    full = await _safe_text(entry) or ""
                    value = normalize_text(full.replace(raw_key or "", "", 1))
                if value and key not in table:
                    table[key] = value
        return table

    async def _detail_rows(self, page: Any) -> dict[str, str]:
        table: dict[str, str] = {}
        for selector in DETAIL_TABLE_ROWS:
            for row in await _safe_all(page, selector):
                header = await _safe_one(row, "th")
                cells = await _safe_all(row, "td")
                if header is None:
                    # <td>key</td><td>value</td>
                    if len(cells) < 2:
                        continue
                    header, cells = cells[0], cells[1:]
                key = normalize_label(await _safe_text(header))
                value = normalize_text(await _safe_text(cells[0] if cells else None))
                if key and value and key not in table:
                    table[key] = value
        return table

    async def _reveal_details(self, page: Any) -> None:
        # Detail sections render lazily below the fold.
        try:
            await page.evaluate("() => window.scrollBy(0, window.innerHeight)")
        except Exception as e:
            logger.debug("scroll failed: %s", e)
