import asyncio

from asin_scraper.extractors import (
    FIELD_CHAINS,
    AttributeOf,
    FieldExtractor,
    SelectorChain,
    TextOf,
    best_sellers_rank,
    normalize_label,
    normalize_text,
)
from asin_scraper.testing import FakeElement, FakePage

LRM = "\N{LEFT-TO-RIGHT MARK}"
RLM = "\N{RIGHT-TO-LEFT MARK}"


def resolve(chain: SelectorChain, page: FakePage):
    return asyncio.run(chain.resolve(page))


def extract(page: FakePage) -> dict:
    return asyncio.run(FieldExtractor(bullet_wait_ms=10).extract(page))


def row(key: str, value: str) -> FakeElement:
    return FakeElement(children={"th": FakeElement(key), "td": FakeElement(value)})


def entry(key: str, value: str) -> FakeElement:
    return FakeElement(
        text=f"{key} {value}",
        children={
            "span.a-text-bold": FakeElement(key),
            "span.a-text-bold + span": FakeElement(value),
        },
    )


def test_normalize_text_strips_marks_and_collapses_whitespace():
    assert normalize_text(f"  Steel\n\t Mug {LRM} ") == "Steel Mug"
    assert normalize_text(f"{RLM}  ") is None
    assert normalize_text(None) is None


def test_normalize_label_drops_trailing_colon():
    assert normalize_label(f"Brand\n {RLM}:{LRM}") == "Brand"
    assert normalize_label(" : ") is None


def test_first_matching_strategy_wins_and_later_ones_are_not_evaluated():
    page = FakePage(document={
        "#productTitle": FakeElement("Widget"),
        "#titleSection #title": FakeElement("Other"),
    })
    assert resolve(FIELD_CHAINS["title"], page) == "Widget"
    assert page.queries["#titleSection #title"] == 0


def test_blank_match_falls_through_to_next_strategy():
    page = FakePage(document={
        "#productTitle": FakeElement("   "),
        "#ebooksProductTitle": FakeElement("The Book"),
    })
    assert resolve(FIELD_CHAINS["title"], page) == "The Book"


def test_raising_strategy_only_skips_itself():
    page = FakePage(document={
        "#priceblock_ourprice": FakeElement(raises=RuntimeError("element is not attached to the DOM")),
        "span.a-price > span.a-offscreen": FakeElement("Rs. 499.00"),
    })
    assert resolve(FIELD_CHAINS["price"], page) == "Rs. 499.00"


def test_chain_with_no_match_is_none():
    chain = SelectorChain("x", [TextOf("#a"), AttributeOf("#b", "src")])
    assert resolve(chain, FakePage()) is None


def test_image_falls_back_to_wrapper_src_then_hires():
    page = FakePage(document={"#imgTagWrapperId img": FakeElement(attrs={"src": "https://m.media/s.jpg"})})
    assert resolve(FIELD_CHAINS["image"], page) == "https://m.media/s.jpg"

    page = FakePage(document={"#imgTagWrapperId img": FakeElement(attrs={"data-old-hires": "https://m.media/h.jpg"})})
    assert resolve(FIELD_CHAINS["image"], page) == "https://m.media/h.jpg"

    page = FakePage(document={
        "#landingImage": FakeElement(attrs={"src": "https://m.media/l.jpg"}),
        "#imgTagWrapperId img": FakeElement(attrs={"src": "https://m.media/s.jpg"}),
    })
    assert resolve(FIELD_CHAINS["image"], page) == "https://m.media/l.jpg"


def test_rating_reads_popover_title_attribute():
    page = FakePage(document={"span#acrPopover": FakeElement(text=" ", attrs={"title": "4.3 out of 5 stars"})})
    assert resolve(FIELD_CHAINS["rating"], page) == "4.3 out of 5 stars"


def test_bullet_points_from_alternate_container_drop_blanks():
    page = FakePage(document={
        "#featurebullets_feature_div ul": FakeElement(),
        "#featurebullets_feature_div ul li": [
            FakeElement("  Double walled "),
            FakeElement(f" {LRM} "),
            FakeElement("Dishwasher\nsafe"),
        ],
    })
    bullets = asyncio.run(FieldExtractor(bullet_wait_ms=10).bullet_points(page))
    assert bullets == ["Double walled", "Dishwasher safe"]


def test_bullet_points_none_when_no_container():
    assert asyncio.run(FieldExtractor(bullet_wait_ms=10).bullet_points(FakePage())) is None


def test_attribute_table_from_table_rows_only():
    page = FakePage(document={
        "#prodDetails table tr": [row("Brand", "Acme"), row(f"Colour {LRM}", " Blue "), row("Empty", " ")],
    })
    table = asyncio.run(FieldExtractor().attribute_table(page))
    assert table == {"Brand": "Acme", "Colour": "Blue"}


def test_attribute_table_from_two_cell_rows():
    def cells(key, value):
        return FakeElement(children={"td": [FakeElement(key), FakeElement(value)]})

    page = FakePage(document={
        "#prodDetails table tr": [cells("Brand", "Acme"), cells("Colour:", "Blue"), FakeElement(children={"td": FakeElement("lonely")})],
    })
    table = asyncio.run(FieldExtractor().attribute_table(page))
    assert table == {"Brand": "Acme", "Colour": "Blue"}


def test_detail_list_wins_and_rows_are_skipped():
    page = FakePage(document={
        "#detailBullets_feature_div li": [entry(f"Manufacturer {RLM}:{LRM}", "Acme Ltd")],
        "#prodDetails table tr": [row("Brand", "Other")],
    })
    table = asyncio.run(FieldExtractor().attribute_table(page))
    assert table == {"Manufacturer": "Acme Ltd"}
    assert page.queries["#prodDetails table tr"] == 0


def test_detail_list_entry_without_value_span_uses_remaining_text():
    bsr_entry = FakeElement(
        text="Best Sellers Rank: #1,234 in Home & Kitchen (See Top 100 in Home & Kitchen) #5 in Mugs",
        children={"span.a-text-bold": FakeElement("Best Sellers Rank:")},
    )
    page = FakePage(document={"#detailBullets_feature_div li": [bsr_entry]})
    fields = extract(page)
    assert fields["attribute_table"]["Best Sellers Rank"].startswith("#1,234 in Home & Kitchen")
    assert fields["best_seller_rank"] == "#1,234 in Home & Kitchen"


def test_bsr_from_combined_key():
    attributes = {
        "Brand": "Acme",
        "Best Sellers Rank #1,234 in Category (See Top 100)": "see details",
    }
    assert best_sellers_rank(attributes) == "#1,234 in Category"


def test_bsr_is_case_insensitive_and_truncated_at_parenthesis():
    assert best_sellers_rank({"best sellers rank": "#12 in Books (See Top 100 in Books)"}) == "#12 in Books"
    assert best_sellers_rank({"Brand": "Acme"}) is None
    assert best_sellers_rank(None) is None


def test_full_extraction_and_idempotence():
    page = FakePage(document={
        "#productTitle": FakeElement("  Steel Mug "),
        "#corePriceDisplay_desktop_feature_div .a-offscreen": FakeElement("Rs. 349.00"),
        "#acrCustomerReviewText": FakeElement("1,024 ratings"),
        "#landingImage": FakeElement(attrs={"src": "https://m.media/mug.jpg"}),
        "#availability": FakeElement("In stock"),
        "#productDescription": FakeElement("A mug."),
        "#feature-bullets ul": FakeElement(),
        "#feature-bullets ul li": [FakeElement("Holds 350 ml")],
        "#productDetails_detailBullets_sections1 tr": [
            row("ASIN", "B000000001"),
            row("Best Sellers Rank", "#77 in Kitchen (See Top 100 in Kitchen)"),
        ],
    })

    first = extract(page)
    second = extract(page)

    assert first == second
    assert first["title"] == "Steel Mug"
    assert first["price"] == "Rs. 349.00"
    assert first["rating"] is None
    assert first["review_count"] == "1,024 ratings"
    assert first["image"] == "https://m.media/mug.jpg"
    assert first["availability"] == "In stock"
    assert first["product_description"] == "A mug."
    assert first["bullet_points"] == ["Holds 350 ml"]
    assert first["attribute_table"]["ASIN"] == "B000000001"
    assert first["best_seller_rank"] == "#77 in Kitchen"


def test_empty_document_yields_all_none():
    fields = extract(FakePage())
    assert set(fields) >= {"title", "price", "bullet_points", "attribute_table", "best_seller_rank"}
    assert all(v is None for v in fields.values())
