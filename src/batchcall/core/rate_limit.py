from __future__ import annotations

import math
from dataclasses import dataclass

from batchcall.core.errors import ValidationError


@dataclass(frozen=True)
class RateLimitPolicy:
    """
    Group-based rate limiting for one job.

    Items run in consecutive groups of at most ``max_concurrent`` calls,
    and the engine waits ``delay_between_groups`` seconds between groups.

    Attributes:
        max_concurrent (int): Maximum number of calls in flight at once (>= 1)
        delay_between_groups (float): Pause in seconds after every group but the last (>= 0)
        name (str): Label used in logs
    """

    max_concurrent: int
    delay_between_groups: float = 0.0
    name: str = "custom"

    def __post_init__(self) -> None:
        if isinstance(self.max_concurrent, bool) or not isinstance(self.max_concurrent, int):
            raise ValidationError(
                f"max_concurrent must be an integer, got {self.max_concurrent!r}"
            )
        if self.max_concurrent < 1:
            raise ValidationError(f"max_concurrent must be >= 1, got {self.max_concurrent}")
        if not isinstance(self.delay_between_groups, (int, float)) or isinstance(
            self.delay_between_groups, bool
        ):
            raise ValidationError(
                f"delay_between_groups must be a number, got {self.delay_between_groups!r}"
            )
        if not math.isfinite(self.delay_between_groups) or self.delay_between_groups < 0:
            raise ValidationError(
                f"delay_between_groups must be finite and >= 0, got {self.delay_between_groups}"
            )

    def num_groups(self, num_items: int) -> int:
        """Number of groups needed for ``num_items`` items."""
        return -(-num_items // self.max_concurrent)


# Free tiers of hosted analysis APIs allow a handful of requests per minute
FREE = RateLimitPolicy(max_concurrent=2, delay_between_groups=4.0, name="free")
PAID = RateLimitPolicy(max_concurrent=10, delay_between_groups=0.5, name="paid")

RATE_LIMIT_PRESETS: dict[str, RateLimitPolicy] = {
    FREE.name: FREE,
    PAID.name: PAID,
}


def get_policy(name: str) -> RateLimitPolicy:
    """
    Look up a named rate limit preset.

    Args:
        name (str): Preset name ("free" or "paid"), case-insensitive

    Returns:
        RateLimitPolicy: The preset policy

    Raises:
        ValidationError: If no preset has that name
    """
    key = name.lower()
    if key not in RATE_LIMIT_PRESETS:
        raise ValidationError(
            f"Unknown rate limit preset: {name}. "
            f"Available: {', '.join(sorted(RATE_LIMIT_PRESETS))}"
        )
    return RATE_LIMIT_PRESETS[key]


def resolve_policy(policy: RateLimitPolicy | str | None) -> RateLimitPolicy:
    """Accept a policy, a preset name, or None (the free preset)."""
    if policy is None:
        return FREE
    if isinstance(policy, str):
        return get_policy(policy)
    if not isinstance(policy, RateLimitPolicy):
        raise ValidationError(f"Expected a RateLimitPolicy or preset name, got {policy!r}")
    return policy
