"""Configuration for the waterfall attribution engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime

from funnelnav.attribution.exceptions import ConfigError

# V3 ("new method") outreach started in March 2025
DEFAULT_NEW_METHOD_CUTOFF = datetime(2025, 3, 1, tzinfo=UTC)


@dataclass(frozen=True)
class AttributionConfig:
    """Timing windows and cutoffs used by the channel matchers.

    Windows are inclusive and expressed in days as computed by
    ``days_difference(touchpoint, signup)``.

    Example:
        >>> config = AttributionConfig(email_window_max_days=60)
        >>> config.email_window
        (1, 60)
    """

    email_window_min_days: int = 1
    email_window_max_days: int = 90
    audit_window_days: int = 30
    new_method_cutoff: datetime = DEFAULT_NEW_METHOD_CUTOFF

    def __post_init__(self) -> None:
        """Validate windows after initialization."""
        if self.email_window_min_days < 0:
            raise ConfigError(
                f"email_window_min_days must be >= 0, got {self.email_window_min_days}"
            )
        if self.email_window_max_days < self.email_window_min_days:
            raise ConfigError(
                f"email_window_max_days ({self.email_window_max_days}) must be >= "
                f"email_window_min_days ({self.email_window_min_days})"
            )
        if self.audit_window_days < 0:
            raise ConfigError(
                f"audit_window_days must be >= 0, got {self.audit_window_days}"
            )
        if self.new_method_cutoff.tzinfo is None:
            raise ConfigError("new_method_cutoff must be timezone-aware")

    @property
    def email_window(self) -> tuple[int, int]:
        """Return the inclusive (min, max) email window."""
        return (self.email_window_min_days, self.email_window_max_days)

    @property
    def audit_window(self) -> tuple[int, int]:
        """Return the inclusive (min, max) audit window."""
        return (-self.audit_window_days, self.audit_window_days)

    @classmethod
    def from_env(cls) -> AttributionConfig:
        """Build configuration from environment variables.

        Reads:
            FUNNELNAV_EMAIL_WINDOW_MAX_DAYS: Upper bound of the email window.
            FUNNELNAV_AUDIT_WINDOW_DAYS: Half-width of the audit window.
            FUNNELNAV_NEW_METHOD_CUTOFF: ISO date of the V3 launch.

        Raises:
            ConfigError: If a variable is set to an invalid value.
        """
        kwargs: dict[str, object] = {}

        email_max = os.getenv("FUNNELNAV_EMAIL_WINDOW_MAX_DAYS")
        if email_max:
            kwargs["email_window_max_days"] = _parse_int(
                "FUNNELNAV_EMAIL_WINDOW_MAX_DAYS", email_max
            )

        audit_days = os.getenv("FUNNELNAV_AUDIT_WINDOW_DAYS")
        if audit_days:
            kwargs["audit_window_days"] = _parse_int(
                "FUNNELNAV_AUDIT_WINDOW_DAYS", audit_days
            )

        cutoff = os.getenv("FUNNELNAV_NEW_METHOD_CUTOFF")
        if cutoff:
            try:
                parsed = datetime.fromisoformat(cutoff)
            except ValueError as e:
                raise ConfigError(f"Invalid FUNNELNAV_NEW_METHOD_CUTOFF: {cutoff}") from e
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            kwargs["new_method_cutoff"] = parsed

        return cls(**kwargs)  # type: ignore[arg-type]


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"Invalid {name}: {value}") from e
