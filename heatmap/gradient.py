from __future__ import annotations

from enum import Enum
from typing import Dict, Sequence, Tuple

from common.logging_setup import get_logger
from common.types import MeasuredLocation


log = get_logger("heatmap.gradient")

Gradient = Dict[float, str]

DEFAULT_SCALE: Tuple[str, ...] = ("blue", "cyan", "lime", "yellow", "red")


class IntervalType(str, Enum):
    """How gradient stops are spaced between the minimum and maximum measure."""

    CONTINUOUS = "continuous"
    QUANTILES = "quantiles"

    @classmethod
    def parse(cls, value: "IntervalType | str") -> "IntervalType":
        if isinstance(value, IntervalType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"unknown interval type {value!r}; expected one of {[m.value for m in cls]}"
            ) from None


def continuous_gradient(scale: Sequence[str]) -> Gradient:
    """Evenly spaced stops: color i sits at i / len(scale)."""
    n = len(scale)
    return {i / n: color for i, color in enumerate(scale)}


def quantile_gradient(scale: Sequence[str], measured_locations: Sequence[MeasuredLocation]) -> Gradient:
    """
    Stops placed at measurement quantiles, normalized by the largest measure.

    Falls back to continuous_gradient() when there are fewer measurements than
    colors. Index 0 is always pinned to position 0. Stops landing on the same
    position keep the later color.
    """
    n = len(scale)
    count = len(measured_locations)
    if count < n:
        return continuous_gradient(scale)

    ordered = sorted(measured_locations, key=lambda m: m.measure)
    max_measure = ordered[-1].measure
    if max_measure <= 0:
        raise ValueError("quantile gradient needs a positive maximum measure")

    gradient: Gradient = {}
    for i, color in enumerate(scale):
        if i == 0:
            gradient[0.0] = color
            continue
        fraction = i / n
        gradient[ordered[int(fraction * count)].measure / max_measure] = color
    return gradient


def build_gradient(
    scale: Sequence[str],
    interval_type: IntervalType | str,
    measured_locations: Sequence[MeasuredLocation] = (),
) -> Gradient:
    """
    Derive a normalized-position -> color mapping.

    Raises:
        ValueError: empty scale, unknown interval type, or a quantile build
            over measurements whose maximum is not positive.
    """
    if not scale:
        raise ValueError("color scale must not be empty")
    interval_type = IntervalType.parse(interval_type)

    if interval_type is IntervalType.CONTINUOUS:
        gradient = continuous_gradient(scale)
    else:
        gradient = quantile_gradient(scale, measured_locations)

    log.debug(
        "Gradient built",
        extra={"extra": {"interval_type": interval_type.value, "stops": len(gradient)}},
    )
    return gradient
