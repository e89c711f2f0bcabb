import pytest

from asin_scraper.settings import ScrapeConfig


def fast_config(**overrides) -> ScrapeConfig:
    """ScrapeConfig with every delay zeroed so runs finish instantly."""
    base = dict(
        settle_delay_ms=(0, 0),
        backoff_delay_ms=(0, 0),
        release_delay_ms=(0, 0),
        consent_click_delay_ms=0,
        bullet_wait_ms=10,
        seed=1,
    )
    base.update(overrides)
    return ScrapeConfig(**base)


@pytest.fixture
def make_config():
    return fast_config
