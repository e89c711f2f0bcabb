"""
In-memory stand-ins for the parts of Playwright the scraper touches.

A document is a dict mapping a CSS selector to one FakeElement or a list of
them. Lookups are by exact selector string; a comma-separated selector
matches if any of its parts does. FakeEngine serves one document per URL
and can be told to time out a URL a number of times.
"""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from typing import Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

ALWAYS = -1


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class FakeElement:
    def __init__(
        self,
        text: str | None = None,
        attrs: dict[str, str] | None = None,
        children: dict[str, Any] | None = None,
        raises: Exception | None = None,
        click_raises: Exception | None = None,
    ):
        self.text = text
        self.attrs = attrs or {}
        self.children = {k: _as_list(v) for k, v in (children or {}).items()}
        self.raises = raises
        self.click_raises = click_raises
        self.clicked = False

    async def text_content(self) -> str | None:
        if self.raises:
            raise self.raises
        return self.text

    async def get_attribute(self, name: str) -> str | None:
        if self.raises:
            raise self.raises
        return self.attrs.get(name)

    async def query_selector(self, selector: str) -> FakeElement | None:
        found = self.children.get(selector, [])
        return found[0] if found else None

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        return list(self.children.get(selector, []))

    async def click(self) -> None:
        if self.click_raises:
            raise self.click_raises
        self.clicked = True


class FakePage:
    def __init__(self, engine: FakeEngine | None = None, document: dict[str, Any] | None = None):
        self.engine = engine
        self.document = {k: _as_list(v) for k, v in (document or {}).items()}
        self.url: str | None = None
        self.goto_timeout: float | None = None
        self.user_agent: str | None = None
        self.headers: dict[str, str] = {}
        self.viewport: dict[str, int] | None = None
        self.closed = False
        self.queries: Counter = Counter()
        self.evaluated: list[str] = []

    def _lookup(self, selector: str) -> list[FakeElement]:
        for part in selector.split(","):
            found = self.document.get(part.strip())
            if found:
                return found
        return []

    async def set_extra_http_headers(self, headers: dict[str, str]) -> None:
        self.headers = dict(headers)

    async def goto(self, url: str, timeout: float | None = None, wait_until: str | None = None):
        self.url = url
        self.goto_timeout = timeout
        if self.engine is not None:
            self.document = await self.engine.navigate(url, timeout)
        return None

    async def query_selector(self, selector: str) -> FakeElement | None:
        self.queries[selector] += 1
        found = self._lookup(selector)
        return found[0] if found else None

    async def query_selector_all(self, selector: str) -> list[FakeElement]:
        self.queries[selector] += 1
        return list(self._lookup(selector))

    async def wait_for_selector(self, selector: str, timeout: float | None = None):
        found = self._lookup(selector)
        if not found:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector!r}")
        return found[0]

    async def evaluate(self, expression: str, *args) -> Any:
        self.evaluated.append(expression)
        return None

    async def close(self) -> None:
        self.closed = True


class FakeEngine:
    """
    Session pool over static documents.

    `failures[url]` is how many navigations to `url` time out before one
    succeeds (ALWAYS for every one). `nav_delay` makes each navigation yield
    to the event loop for that long so concurrency is observable.
    `acquire_error` is raised by the first `acquire_failures` session
    requests (ALWAYS for all of them).
    """

    def __init__(
        self,
        documents: dict[str, dict[str, Any]] | None = None,
        failures: dict[str, int] | None = None,
        nav_delay: float = 0.0,
        acquire_error: Exception | None = None,
        acquire_failures: int = ALWAYS,
    ):
        self.documents = documents or {}
        self.failures = dict(failures or {})
        self.nav_delay = nav_delay
        self.acquire_error = acquire_error
        self.acquire_failures = acquire_failures
        self.acquisitions = 0
        self.navigations: defaultdict[str, int] = defaultdict(int)
        self.pages: list[FakePage] = []
        self.active = 0
        self.peak_active = 0

    async def acquire_session(self, *, user_agent: str, viewport: dict[str, int]) -> FakePage:
        self.acquisitions += 1
        if self.acquire_error is not None and self.acquire_failures:
            if self.acquire_failures != ALWAYS:
                self.acquire_failures -= 1
            raise self.acquire_error
        page = FakePage(self)
        page.user_agent = user_agent
        page.viewport = dict(viewport)
        self.pages.append(page)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        return page

    async def release_session(self, page: FakePage) -> None:
        await page.close()
        self.active -= 1

    async def navigate(self, url: str, timeout: float | None) -> dict[str, list]:
        self.navigations[url] += 1
        await asyncio.sleep(self.nav_delay)
        remaining = self.failures.get(url, 0)
        if remaining:
            if remaining != ALWAYS:
                self.failures[url] = remaining - 1
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")
        return {k: _as_list(v) for k, v in self.documents.get(url, {}).items()}
