"""Full jitter backoff for retry delays."""
from __future__ import annotations

import math
import random
from typing import Any


def full_jitter(base_ms: float, attempt: int, rng: Any = None) -> int:
    """Return a delay in milliseconds drawn uniformly from ``[0, base_ms * 2**attempt)``.

    ``attempt`` is the 1-indexed number of the attempt that just failed, so the
    first wait already uses an exponent of one. ``rng`` may be any object with
    a ``random()`` method and defaults to the :mod:`random` module.
    """

    if base_ms <= 0:
        raise ValueError("base_ms must be greater than zero")
    if attempt < 1:
        raise ValueError("attempt must be 1 or greater")

    source = rng if rng is not None else random
    cap = base_ms * (2 ** attempt)
    return math.floor(source.random() * cap)


__all__ = ["full_jitter"]
