"""Composition of multiplier and flat-gain maps from independent sources."""

import math
from typing import Dict, Iterable, Protocol

from .models import FLAT_GAINS, GAIN_MULTIPLIERS

# Reduction factors are clamped to this before being inverted into a cost multiplier
MIN_REDUCTION_FACTOR = 0.001

MultipliersMap = Dict[str, float]
FlatGainsMap = Dict[str, float]


class MultiplierSource(Protocol):
    def multipliers(self) -> MultipliersMap:
        """Factor per effect key; every key present, identity 1.0."""


class FlatGainSource(Protocol):
    def flat_gains(self) -> FlatGainsMap:
        """Additive amount per flat key; every key present, identity 0."""


def create_multipliers_map(initial: float = 1.0) -> MultipliersMap:
    return {key: initial for key in GAIN_MULTIPLIERS}


def create_flat_gains_map(initial: float = 0) -> FlatGainsMap:
    return {key: initial for key in FLAT_GAINS}


def compose_multiplier(sources: Iterable[MultiplierSource], key: str) -> float:
    """Effective factor for one key: the product over every source.

    ``math.prod`` over a sorted list keeps the float result identical no
    matter which order the sources come in.
    """
    if key not in GAIN_MULTIPLIERS:
        raise KeyError(f"Unknown multiplier key: {key}")
    factors = sorted(source.multipliers().get(key, 1.0) for source in sources)
    result = math.prod(factors)
    if result < 0:
        raise ValueError(f"Multiplier {key} composed to a negative factor: {result}")
    return result


def compose_multipliers(sources: Iterable[MultiplierSource]) -> MultipliersMap:
    """Effective factor for every key."""
    sources = list(sources)
    return {key: compose_multiplier(sources, key) for key in GAIN_MULTIPLIERS}


def compose_flat_gain(sources: Iterable[object], key: str) -> float:
    """Sum of a flat key across the sources that expose flat gains."""
    if key not in FLAT_GAINS:
        raise KeyError(f"Unknown flat gain key: {key}")
    amounts = sorted(
        source.flat_gains().get(key, 0)
        for source in sources
        if hasattr(source, "flat_gains")
    )
    return sum(amounts)


def cost_multiplier_from_reduction(reduction: float) -> float:
    """Turn a reduction factor into what the payer pays.

    A reduction of 1.2 means paying 1/1.2, about 83% of the base.
    """
    return 1 / max(reduction, MIN_REDUCTION_FACTOR)


def stack_multiplier(current: float, value: float, levels: int = 1) -> float:
    """Multiplicative stacking of a per-level effect."""
    return current * math.pow(value, levels)
