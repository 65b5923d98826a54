"""Token economy and reward catalog."""

import math
from dataclasses import dataclass

from therapy_session.core.errors import ValidationError


def crossed_threshold(old: float, new: float, divisor: float) -> bool:
    """
    Whether moving from `old` to `new` crosses a multiple of `divisor`.

    Activity modules use this on their 0-100 meters (divisor 25) to decide
    when to award a token.

    @param old - Value before the change
    @param new - Value after the change
    @param divisor - Threshold spacing, must be positive
    @returns True when floor(new / divisor) > floor(old / divisor)
    """
    if divisor <= 0:
        raise ValidationError("Threshold divisor must be positive", {"divisor": divisor})
    return math.floor(new / divisor) > math.floor(old / divisor)


class TokenEconomy:
    """Bounded token counter. Only the engine mutates it."""

    def __init__(self, max_tokens: int = 10, count: int = 0):
        if max_tokens < 1:
            raise ValidationError("max_tokens must be at least 1", {"max_tokens": max_tokens})
        if not 0 <= count <= max_tokens:
            raise ValidationError(
                "Initial token count out of range",
                {"count": count, "max_tokens": max_tokens},
            )
        self.max = max_tokens
        self.count = count

    @property
    def is_full(self) -> bool:
        return self.count >= self.max

    def add(self, n: int = 1) -> int:
        """Add tokens, clamping at the maximum. Returns the new count."""
        if n < 0:
            raise ValidationError("Cannot add a negative number of tokens", {"n": n})
        self.count = min(self.max, self.count + n)
        return self.count

    def progress_percent(self) -> float:
        return self.count / self.max * 100

    def progress_to_reward(self, cost: int) -> float:
        """Percent progress toward a reward costing `cost` tokens, capped at 100."""
        if cost <= 0:
            raise ValidationError("Reward cost must be positive", {"cost": cost})
        return min(100.0, self.count / cost * 100)

    def crossed_quarter(self, old_count: int) -> bool:
        """Whether the count moved past a quarter of the maximum since `old_count`."""
        return crossed_threshold(old_count, self.count, self.max / 4)

    def __repr__(self) -> str:
        return f"TokenEconomy(count={self.count}, max={self.max})"


@dataclass(frozen=True)
class Reward:
    """Something a child can unlock with tokens."""

    id: str
    name: str
    description: str
    token_cost: int


DEFAULT_REWARDS: tuple[Reward, ...] = (
    Reward("reward-1", "Special Dragon Story", "Unlock a special dragon story to read together", 5),
    Reward("reward-2", "Dragon Dance Party", "Have a 1-minute dragon dance party with music", 3),
    Reward("reward-3", "Dragon Treasure", "Receive a small dragon-themed prize", 10),
    Reward("reward-4", "Dragon Drawing", "Create a special dragon drawing together", 7),
)


def unlocked_rewards(
    economy: TokenEconomy,
    rewards: tuple[Reward, ...] | list[Reward] = DEFAULT_REWARDS,
) -> list[Reward]:
    """Rewards whose cost is covered by the current count, cheapest first."""
    return sorted(
        (reward for reward in rewards if economy.count >= reward.token_cost),
        key=lambda reward: reward.token_cost,
    )
