from dataclasses import replace

import pytest

from config.settings import ScrapeTimings
from core.cache.result_cache import ResultCache
from core.scrapers.websites.blibli_scraper import BLIBLI_PROFILE
from core.scrapers.websites.tokopedia_scraper import TOKOPEDIA_PROFILE
from tests.fakes import MemoryBackend


@pytest.fixture
def fast_timings():
    return ScrapeTimings(
        initial_wait_ms=0,
        poll_interval_ms=0,
        ready_max_attempts=3,
        progress_every=2,
        scroll_rounds=8,
        scroll_settle_ms=0,
        scroll_pause_ms=0,
        stable_rounds=2,
        scroll_top_wait_ms=0,
    )


@pytest.fixture
def tokopedia_profile(fast_timings):
    return replace(TOKOPEDIA_PROFILE, timings=fast_timings)


@pytest.fixture
def blibli_profile(fast_timings):
    return replace(BLIBLI_PROFILE, timings=fast_timings)


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def result_cache(memory_backend):
    return ResultCache(memory_backend, ttl_seconds=86400)
