"""Seed generation and parsing."""

from typing import Optional, Union

import numpy as np

from lightning_realtime.models.request import MAX_SEED


SEED_UPPER_BOUND = 10_000_000

_default_rng = np.random.default_rng()


def random_seed(rng: Optional[np.random.Generator] = None) -> str:
    """
    Draw a new seed, uniform over [0, SEED_UPPER_BOUND), as text.

    Args:
        rng: Generator to draw from; a process-wide one if None
    """
    generator = rng if rng is not None else _default_rng
    return str(int(generator.integers(0, SEED_UPPER_BOUND)))


def parse_seed(value: Union[int, str]) -> int:
    """
    Convert a user-supplied seed to an integer.

    Raises:
        ValueError: If the value is not an integer in [0, MAX_SEED]
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid seed: {value!r}")
    if isinstance(value, int):
        seed = value
    else:
        text = str(value).strip()
        if not text.isdigit():
            raise ValueError(f"Invalid seed: {value!r}")
        seed = int(text)
    if seed < 0:
        raise ValueError(f"Seed must be non-negative: {seed}")
    if seed > MAX_SEED:
        raise ValueError(f"Seed must be at most {MAX_SEED}: {seed}")
    return seed
