"""
Error taxonomy for extraction runs.

A field that cannot be located is not an error at all (it stays None).
AttemptFailure is contained inside one task and drives retries; once retries
are exhausted it only survives as the record's error message. FatalError is
the one exception that escapes the orchestrator and ends the run.
"""


class ScraperError(Exception):
    """Base class for errors raised by asin_scraper."""


class AttemptFailure(ScraperError):
    """Navigation or page setup failed for one attempt."""


class FatalError(ScraperError):
    """The run cannot proceed (browser did not start, input unreadable)."""
