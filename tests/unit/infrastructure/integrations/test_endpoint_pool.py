"""Tests for EndpointPool rotation/promotion."""

import random

import pytest

from unistream.domain.exceptions import ConfigurationError
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool

MIRRORS = ["https://m1.test", "https://m2.test/", "https://m3.test"]


@pytest.fixture
def pool(rng: random.Random) -> EndpointPool:
    return EndpointPool("piped", MIRRORS, rng=rng)


class TestEndpointPool:
    def test_empty_pool_is_a_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            EndpointPool("piped", ["", "  "])

    def test_trailing_slashes_are_stripped(self, pool: EndpointPool) -> None:
        assert pool.endpoints == ["https://m1.test", "https://m2.test", "https://m3.test"]

    def test_initial_pointer_is_random(self) -> None:
        """Fresh processes must not all start on mirror #0."""
        seen = {EndpointPool("p", MIRRORS, rng=random.Random(seed)).pick() for seed in range(30)}
        assert len(seen) > 1

    def test_rotate_wraps_around(self, pool: EndpointPool) -> None:
        assert pool.rotate() == "https://m2.test"
        assert pool.rotate() == "https://m3.test"
        assert pool.rotate() == "https://m1.test"

    def test_promote_moves_preferred(self, pool: EndpointPool) -> None:
        pool.promote("https://m3.test/")
        assert pool.pick() == "https://m3.test"

    def test_promote_unknown_is_ignored(self, pool: EndpointPool) -> None:
        pool.promote("https://elsewhere.test")
        assert pool.pick() == "https://m1.test"

    def test_override_wins_until_cleared(self, pool: EndpointPool) -> None:
        pool.set_override("https://mine.test/")
        assert pool.pick() == "https://mine.test"
        pool.rotate()
        assert pool.pick() == "https://mine.test"

        pool.set_override("")
        assert pool.override is None
        assert pool.pick() == "https://m2.test"

    def test_candidates_start_at_preferred(self, pool: EndpointPool) -> None:
        pool.promote("https://m2.test")
        assert pool.candidates() == ["https://m2.test", "https://m3.test", "https://m1.test"]

    def test_candidates_put_override_first(self, pool: EndpointPool) -> None:
        pool.set_override("https://m3.test")
        assert pool.candidates() == ["https://m3.test", "https://m1.test", "https://m2.test"]
