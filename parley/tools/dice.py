"""
Dice rolling tools for negotiations.

Draw Steel power rolls: 2d10 plus a characteristic, adjusted by
edges and banes.
"""

import random
from dataclasses import dataclass

from ..state.payloads import RollInput


EDGE_BONUS = 2


@dataclass
class PowerRollResult:
    """Result of a power roll."""
    rolls: list[int]  # Both d10s
    modifier: int
    edge_bonus: int  # +2 net edge, -2 net bane, else 0
    total: int

    @property
    def natural(self) -> int:
        return sum(self.rolls)

    @property
    def natural19or20(self) -> bool:
        return self.natural >= 19

    @property
    def formula(self) -> str:
        bonus = self.modifier + self.edge_bonus
        if bonus == 0:
            return "2d10"
        return f"2d10{bonus:+d}"

    def to_roll_input(self, visible_to_players: bool = True) -> RollInput:
        """Roll as an argument payload expects it."""
        return RollInput(
            mode="rolled",
            formula=self.formula,
            total=self.total,
            visible_to_players=visible_to_players,
        )


def roll_d10(rng: random.Random | None = None) -> int:
    """Roll a single d10."""
    return (rng or random).randint(1, 10)


def roll_power(
    modifier: int = 0,
    edges: int = 0,
    banes: int = 0,
    rng: random.Random | None = None,
) -> PowerRollResult:
    """
    Roll a power roll.

    Args:
        modifier: Characteristic added to the dice
        edges: Number of edges; each bane cancels one
        banes: Number of banes
        rng: Random source, seeded in tests

    Returns:
        PowerRollResult with dice, modifiers and total
    """
    rolls = [roll_d10(rng), roll_d10(rng)]

    net = edges - banes
    if net > 0:
        edge_bonus = EDGE_BONUS
    elif net < 0:
        edge_bonus = -EDGE_BONUS
    else:
        edge_bonus = 0

    return PowerRollResult(
        rolls=rolls,
        modifier=modifier,
        edge_bonus=edge_bonus,
        total=sum(rolls) + modifier + edge_bonus,
    )
