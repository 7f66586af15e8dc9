import dataclasses

import pytest

from batchcall.core.errors import ValidationError
from batchcall.core.rate_limit import (
    FREE,
    PAID,
    RATE_LIMIT_PRESETS,
    RateLimitPolicy,
    get_policy,
    resolve_policy,
)


class TestRateLimitPolicy:
    """Tests for the RateLimitPolicy configuration."""

    def test_valid_policy(self) -> None:
        """Test that a valid policy keeps its values."""
        policy = RateLimitPolicy(max_concurrent=3, delay_between_groups=1.5, name="mine")

        assert policy.max_concurrent == 3
        assert policy.delay_between_groups == 1.5
        assert policy.name == "mine"

    @pytest.mark.parametrize(
        argnames="max_concurrent,delay",
        argvalues=[
            (0, 1.0),
            (-1, 1.0),
            (2.5, 1.0),
            (True, 1.0),
            (2, -0.1),
            (2, "1"),
            (2, float("inf")),
            (2, float("nan")),
        ],
    )
    def test_invalid_policy_raises(self, max_concurrent: object, delay: object) -> None:
        """Test that malformed policies are rejected at construction."""
        with pytest.raises(ValidationError):
            RateLimitPolicy(max_concurrent=max_concurrent, delay_between_groups=delay)  # type: ignore[arg-type]

    def test_validation_error_is_value_error(self) -> None:
        """Test that ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            RateLimitPolicy(max_concurrent=0)

    def test_policy_is_immutable(self) -> None:
        """Test that a policy cannot change during a job."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            FREE.max_concurrent = 100  # type: ignore[misc]

    @pytest.mark.parametrize(
        argnames="num_items,max_concurrent,expected",
        argvalues=[
            (0, 2, 0),
            (1, 2, 1),
            (4, 2, 2),
            (5, 2, 3),
            (10, 10, 1),
            (11, 10, 2),
        ],
    )
    def test_num_groups(self, num_items: int, max_concurrent: int, expected: int) -> None:
        """Test ceil(N/K) group counting."""
        assert RateLimitPolicy(max_concurrent=max_concurrent).num_groups(num_items) == expected


class TestPresets:
    """Tests for named rate limit presets."""

    def test_free_is_more_conservative_than_paid(self) -> None:
        """Test that the free preset runs fewer items and waits longer."""
        assert FREE.max_concurrent < PAID.max_concurrent
        assert FREE.delay_between_groups > PAID.delay_between_groups

    def test_preset_values(self) -> None:
        """Test the preset values."""
        assert (FREE.max_concurrent, FREE.delay_between_groups) == (2, 4.0)
        assert (PAID.max_concurrent, PAID.delay_between_groups) == (10, 0.5)
        assert set(RATE_LIMIT_PRESETS) == {"free", "paid"}

    @pytest.mark.parametrize(argnames="name", argvalues=["free", "FREE", "Free"])
    def test_get_policy_is_case_insensitive(self, name: str) -> None:
        """Test preset lookup by name."""
        assert get_policy(name) is FREE

    def test_unknown_preset_raises(self) -> None:
        """Test that unknown preset names are rejected."""
        with pytest.raises(ValidationError, match="Unknown rate limit preset"):
            get_policy("enterprise")

    def test_resolve_policy(self) -> None:
        """Test accepting policies, preset names and None."""
        custom = RateLimitPolicy(max_concurrent=4)

        assert resolve_policy(None) is FREE
        assert resolve_policy("paid") is PAID
        assert resolve_policy(custom) is custom
        with pytest.raises(ValidationError):
            resolve_policy(4)  # type: ignore[arg-type]
