"""Tools for running negotiations at the table."""

from .dice import PowerRollResult, roll_d10, roll_power

__all__ = [
    "PowerRollResult",
    "roll_d10",
    "roll_power",
]
