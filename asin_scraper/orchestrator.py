"""
Concurrent extraction run: scheduler -> session -> retry -> extractor -> collector.
"""

import logging
import time
from contextlib import AsyncExitStack
from typing import Sequence

from .browser_scraper import BrowserScraper, SessionEngine, SessionManager
from .collector import ResultCollector
from .extractors import FieldExtractor
from .logging_utils import log_event
from .models import ExtractionResult, Task, TaskState
from .policy import PacingPolicy
from .retry import RetryController
from .scheduler import Scheduler
from .settings import ProxySettings, ScrapeConfig
from .utils import describe_error, failed_result

logger = logging.getLogger(__name__)


class ExtractionOrchestrator:
    """
    Turns a sequence of identifiers into exactly one ExtractionResult each.

    The engine only creates and destroys sessions; all page state stays with
    the task that owns the session, so tasks share nothing that needs locking.
    """

    def __init__(
        self,
        engine: SessionEngine,
        config: ScrapeConfig,
        *,
        pacing: PacingPolicy | None = None,
        extractor: FieldExtractor | None = None,
    ):
        self.config = config
        self.pacing = pacing or PacingPolicy(config)
        self.sessions = SessionManager(engine, config, self.pacing)
        self.extractor = extractor or FieldExtractor(bullet_wait_ms=config.bullet_wait_ms)
        self.retry = RetryController(config.max_attempts, self.pacing)
        self.scheduler = Scheduler(config.concurrency, cooldown=self._cooldown)
        self.collector = ResultCollector()

    async def run(self, identifiers: Sequence[str]) -> list[ExtractionResult]:
        t0 = time.perf_counter()
        log_event(
            logger, logging.INFO, "run_started",
            identifiers=len(identifiers), concurrency=self.config.concurrency,
        )

        await self.scheduler.run(identifiers, self._process)
        self.collector.close()

        log_event(
            logger, logging.INFO, "run_finished",
            results=len(self.collector), succeeded=self.collector.succeeded,
            failed=self.collector.failed, elapsed_s=round(time.perf_counter() - t0, 2),
        )
        return self.collector.results()

    async def _process(self, task: Task) -> None:
        url = self.config.product_url(task.identifier)
        result = None
        try:
            async with AsyncExitStack() as stack:
                pages = []

                async def attempt() -> ExtractionResult:
                    # One session per task, opened lazily so a failed open is retried.
                    if not pages:
                        pages.append(await stack.enter_async_context(self.sessions.session()))
                    return await self._attempt(pages[0], task, url)

                result = await self.retry.run(task, url, attempt)
        except Exception as e:
            if result is None:
                task.state = TaskState.FAILED
                result = failed_result(task.identifier, url, describe_error(e), task.attempts)
            else:
                logger.warning("Releasing session for %s failed: %s", task.identifier, e)

        self.collector.add(result)
        self._report(result)

    async def _attempt(self, page, task: Task, url: str) -> ExtractionResult:
        await self.sessions.load(page, url)
        fields = await self.extractor.extract(page)
        return ExtractionResult(identifier=task.identifier, url=url, **fields)

    async def _cooldown(self) -> None:
        await self.pacing.pause(self.pacing.release_delay())

    def _report(self, result: ExtractionResult) -> None:
        if result.ok:
            log_event(
                logger, logging.INFO, "task_succeeded",
                identifier=result.identifier, attempts=result.attempts,
                title=(result.title or "NO TITLE")[:60],
            )
        else:
            log_event(
                logger, logging.WARNING, "task_failed",
                identifier=result.identifier, attempts=result.attempts,
                error=result.error_message,
            )


async def scrape_identifiers(
    identifiers: Sequence[str],
    config: ScrapeConfig,
    proxy: ProxySettings | None = None,
) -> list[ExtractionResult]:
    """
    Start the browser, run every identifier through it and shut it down.
    Raises FatalError when the browser cannot be started.
    """
    async with BrowserScraper(config, proxy) as engine:
        return await ExtractionOrchestrator(engine, config).run(identifiers)
