"""Property-based tests for RequestsConfig using Hypothesis.

This test suite generates diverse inputs and verifies that validation
accepts every valid configuration and rejects every invalid one.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from resilient_requests.config import VALID_LOG_LEVELS, RequestsConfig

# Strategy for valid backoff base units (strictly positive)
valid_backoff_strategy = st.floats(min_value=1e-6, max_value=60, allow_nan=False)

# Strategy for invalid backoff base units
invalid_backoff_strategy = st.floats(max_value=0, allow_nan=False, allow_infinity=False)

# Strategy for log levels in any case
log_level_strategy = st.sampled_from(sorted(VALID_LOG_LEVELS)).flatmap(
    lambda level: st.sampled_from([level, level.lower(), level.capitalize()])
)


class TestConfigProperties:
    """Property-based tests for configuration validation."""

    @given(backoff=valid_backoff_strategy, drain=st.integers(min_value=0, max_value=10**9))
    def test_valid_values_accepted(self, backoff: float, drain: int) -> None:
        """Property: valid numeric settings round-trip unchanged."""
        config = RequestsConfig(backoff_base_seconds=backoff, drain_limit_bytes=drain)

        assert config.backoff_base_seconds == backoff
        assert config.drain_limit_bytes == drain

    @given(backoff=invalid_backoff_strategy)
    def test_invalid_backoff_rejected(self, backoff: float) -> None:
        """Property: a non-positive backoff base is always rejected."""
        with pytest.raises(ValidationError):
            RequestsConfig(backoff_base_seconds=backoff)

    @given(drain=st.integers(max_value=-1))
    def test_negative_drain_limit_rejected(self, drain: int) -> None:
        """Property: a negative drain limit is always rejected."""
        with pytest.raises(ValidationError):
            RequestsConfig(drain_limit_bytes=drain)

    @given(level=log_level_strategy)
    def test_log_level_normalized(self, level: str) -> None:
        """Property: every valid level is accepted in any case."""
        assert RequestsConfig(log_level=level).log_level == level.upper()

    @given(timeout=st.one_of(st.none(), st.floats(min_value=0.001, max_value=3600)))
    def test_from_dict_matches_constructor(self, timeout: float | None) -> None:
        """Property: from_dict builds the same config as the constructor."""
        values = {"default_timeout_seconds": timeout}
        assert RequestsConfig.from_dict(values) == RequestsConfig(**values)
