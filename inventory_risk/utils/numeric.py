"""Numeric helpers shared by the simulation and analytics modules."""
import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves going up.

    Python's round() uses banker's rounding (round(2.5) == 2); risk scores
    and unit counts use the conventional rule instead.

    Examples:
        >>> round_half_up(2.5)
        3
        >>> round_half_up(2.49)
        2
    """
    return int(math.floor(value + 0.5))
