import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

from playwright.async_api import Error as PlaywrightError, async_playwright

from .errors import AttemptFailure, FatalError
from .policy import PacingPolicy
from .settings import ProxySettings, ScrapeConfig

logger = logging.getLogger(__name__)

# Accept-style controls for cookie/consent banners (EU/UK storefronts).
CONSENT_SELECTORS = (
    "#sp-cc-accept",
    "input[name='accept']",
    "xpath=//input[@name='accept' or contains(@id,'accept') or contains(@value,'Accept')]",
)


class SessionEngine(Protocol):
    async def acquire_session(self, *, user_agent: str, viewport: dict[str, int]) -> Any: ...

    async def release_session(self, page: Any) -> None: ...


class BrowserScraper:
    """
    Shared Playwright Chromium instance that hands out one page per task.

    - Uses single browser instance per context manager (__aenter__/__aexit__)
    - Every session gets its own browser context, so cookies never leak between tasks
    - Supports proxy authentication
    - Each context carries the session identity: user agent, viewport, locale
    - Configurable headless mode, launch args and heavy-resource blocking
    - A browser that fails to start raises FatalError
    """

    name = "browser"

    def __init__(self, config: ScrapeConfig, proxy: ProxySettings | None = None):
        self.config = config
        self.proxy = proxy

        self._playwright = None
        self._browser = None

    async def __aenter__(self):
        proxy_dict = None
        if self.proxy and self.config.use_proxy:
            proxy_dict = self.proxy.playwright_proxy()

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.browser_headless,
                args=list(self.config.browser_args),
                proxy=proxy_dict,
            )
        except Exception as e:
            await self.__aexit__(None, None, None)
            raise FatalError(f"could not start the browser: {e}") from e

        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def acquire_session(self, *, user_agent: str, viewport: dict[str, int]):
        context = await self._browser.new_context(
            user_agent=user_agent,
            viewport=viewport,
            locale=self.config.browser_locale,
        )

        # Optional: block heavy resources
        if self.config.browser_block_heavy:
            async def route_handler(route):
                if route.request.resource_type in {"image", "media", "font"}:
                    await route.abort()
                else:
                    await route.continue_()
            await context.route("**/*", route_handler)

        try:
            return await context.new_page()
        except Exception:
            await context.close()
            raise

    async def release_session(self, page) -> None:
        try:
            await page.context.close()
        except PlaywrightError as e:
            # Browser already gone, nothing left to release
            logger.debug("context close failed: %s", e)


class SessionManager:
    """
    Scoped page ownership plus everything done to a page before extraction.

    A session is opened with a randomly picked user agent and the fixed
    viewport. Each load sets the language header, navigates with a hard
    timeout, waits a randomized settle delay and tries to dismiss consent.
    """

    def __init__(self, engine: SessionEngine, config: ScrapeConfig, pacing: PacingPolicy):
        self.engine = engine
        self.config = config
        self.pacing = pacing

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        page = await self.engine.acquire_session(
            user_agent=self.pacing.user_agent(),
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
        )
        try:
            yield page
        finally:
            await self.engine.release_session(page)

    async def load(self, page, url: str) -> None:
        """
        One navigation attempt. Raises AttemptFailure when the page could
        not be configured or loaded.
        """
        try:
            await page.set_extra_http_headers({"Accept-Language": self.config.accept_language})
            await page.goto(url, timeout=self.config.navigation_timeout_ms, wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise AttemptFailure(e.message) from e

        await self.pacing.pause(self.pacing.settle_delay())
        await self.dismiss_consent(page)

    async def dismiss_consent(self, page) -> bool:
        """Click the first accept-style control found. Returns True if one was clicked."""
        for selector in CONSENT_SELECTORS:
            try:
                button = await page.query_selector(selector)
            except Exception:
                continue
            if button is None:
                continue
            try:
                await button.click()
                await self.pacing.pause(self.config.consent_click_delay_ms / 1000.0)
            except Exception as e:
                logger.debug("consent click failed (%s): %s", selector, e)
                return False
            return True
        return False
