"""
Seed Tests
==========

Tests for seed generation and parsing.
"""

import numpy as np
import pytest

from lightning_realtime.models.request import MAX_SEED
from lightning_realtime.sync.seed import SEED_UPPER_BOUND, parse_seed, random_seed


class TestRandomSeed:
    """Tests for random_seed."""

    def test_returns_decimal_text(self):
        """Seeds are stringified integers."""
        seed = random_seed()
        assert isinstance(seed, str)
        assert seed.isdigit()

    def test_always_in_range(self):
        """Every seed is in [0, 10_000_000)."""
        rng = np.random.default_rng(7)
        for _ in range(5000):
            value = int(random_seed(rng))
            assert 0 <= value < SEED_UPPER_BOUND

    def test_approximately_uniform(self):
        """Ten equal-width bins each get roughly a tenth of the samples."""
        rng = np.random.default_rng(1234)
        samples = 20000
        bins = np.zeros(10, dtype=int)
        for _ in range(samples):
            bins[int(random_seed(rng)) * 10 // SEED_UPPER_BOUND] += 1

        expected = samples / 10
        assert np.all(np.abs(bins - expected) < expected * 0.1)

    def test_seeded_generator_is_reproducible(self):
        """The same generator seed gives the same sequence."""
        rng_a = np.random.default_rng(3)
        rng_b = np.random.default_rng(3)
        assert [random_seed(rng_a) for _ in range(3)] == [random_seed(rng_b) for _ in range(3)]


class TestParseSeed:
    """Tests for parse_seed."""

    @pytest.mark.parametrize(
        "value, expected",
        [(123, 123), ("123", 123), (" 42 ", 42), ("0", 0), (str(MAX_SEED), MAX_SEED)],
    )
    def test_valid(self, value, expected):
        assert parse_seed(value) == expected

    @pytest.mark.parametrize(
        "value",
        ["", "abc", "12a", "-5", -1, "1.5", True, MAX_SEED + 1, "99999999999999999999999"],
    )
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_seed(value)
