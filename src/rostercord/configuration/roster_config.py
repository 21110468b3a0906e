"""Typed, immutable roster configuration.

Built once at startup from the ``roster:`` section of the YAML config and
passed explicitly into every component that needs it.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

from rostercord.datatypes.roster_datatypes import CLEAR_PREFERENCES_TAG, ConfigurationError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_COLLECTION_NAME = "roster"
DEFAULT_CLOCK_CHANNEL = "clock-station"
DEFAULT_PARTY_FINDER_CHANNEL = "party-finder"
DEFAULT_CLOCKED_IN_ROLE = "Clocked In"
DEFAULT_AUTO_CLOCK_OUT_HOURS = 4.0
DEFAULT_CLEANUP_INTERVAL_MINUTES = 5.0
# Four button rows of five under Clock In / Clock Out, one slot taken by Clear
MAX_PREFERENCE_TAGS = 19


@dataclass(frozen=True)
class CategoryRule:
    """One row of the classification table: role-name regex and its label."""

    pattern: re.Pattern[str]
    label: str

    @classmethod
    def compile(cls, pattern: str, label: str) -> "CategoryRule":
        try:
            compiled = re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            raise ConfigurationError(f"Invalid category pattern {pattern!r}: {exc}") from exc
        return cls(pattern=compiled, label=str(label))

    def matches(self, role_name: str) -> bool:
        return self.pattern.search(role_name) is not None


@dataclass(frozen=True)
class RosterConfig:
    """
    Static roster settings.

    Attributes:
        collection_name: Table holding roster entries.
        clock_channel_name: Control channel carrying the clock-station buttons.
        party_finder_channel_name: Gated channel showing the roster summary.
        clocked_in_role_name: Active-marker role granted while clocked in.
        preference_tags: Ordered tag -> label mapping; labels name the preference roles.
        categories: Ordered classification table, first match wins.
        auto_clock_out_hours: Duration of a clock-in.
        cleanup_interval_minutes: Interval of the expiry sweep.
    """

    collection_name: str = DEFAULT_COLLECTION_NAME
    clock_channel_name: str = DEFAULT_CLOCK_CHANNEL
    party_finder_channel_name: str = DEFAULT_PARTY_FINDER_CHANNEL
    clocked_in_role_name: str = DEFAULT_CLOCKED_IN_ROLE
    preference_tags: Dict[str, str] = field(default_factory=dict)
    categories: Tuple[CategoryRule, ...] = ()
    auto_clock_out_hours: float = DEFAULT_AUTO_CLOCK_OUT_HOURS
    cleanup_interval_minutes: float = DEFAULT_CLEANUP_INTERVAL_MINUTES

    def __post_init__(self) -> None:
        if not _IDENTIFIER_RE.match(self.collection_name):
            raise ConfigurationError(f"collection_name must be a plain identifier, got {self.collection_name!r}")
        if self.auto_clock_out_hours <= 0:
            raise ConfigurationError("auto_clock_out_hours must be positive")
        if self.cleanup_interval_minutes <= 0:
            raise ConfigurationError("cleanup_interval_minutes must be positive")
        if CLEAR_PREFERENCES_TAG in self.preference_tags:
            raise ConfigurationError(f"'{CLEAR_PREFERENCES_TAG}' is reserved and cannot be a preference tag")
        if len(self.preference_tags) > MAX_PREFERENCE_TAGS:
            raise ConfigurationError(
                f"At most {MAX_PREFERENCE_TAGS} preference tags fit on the clock station, got {len(self.preference_tags)}"
            )

    @property
    def clock_out_after(self) -> datetime.timedelta:
        return datetime.timedelta(hours=self.auto_clock_out_hours)

    @property
    def preference_labels(self) -> Dict[str, str]:
        """Preference tag -> label."""
        return dict(self.preference_tags)

    @property
    def managed_role_names(self) -> frozenset[str]:
        """Roles the bot hands out; never used for category detection."""
        return frozenset({self.clocked_in_role_name, *self.preference_tags.values()})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "RosterConfig":
        """Build a config from the raw ``roster:`` mapping, applying defaults."""
        data = data if isinstance(data, Mapping) else {}
        channels = _section(data, "channels")
        roles = _section(data, "roles")
        timers = _section(data, "timers")

        raw_tags = data.get("preference_tags") or {}
        if not isinstance(raw_tags, Mapping):
            raise ConfigurationError("preference_tags must be a mapping of tag to label")
        preference_tags = {str(tag).strip().lower(): str(label) for tag, label in raw_tags.items()}

        raw_categories = data.get("categories") or []
        if not isinstance(raw_categories, list):
            raise ConfigurationError("categories must be a list of {pattern, label} items")
        categories = []
        for item in raw_categories:
            if not isinstance(item, Mapping) or "pattern" not in item or "label" not in item:
                raise ConfigurationError(f"Invalid category entry: {item!r}")
            categories.append(CategoryRule.compile(str(item["pattern"]), str(item["label"])))

        try:
            auto_hours = float(timers.get("auto_clock_out_hours", DEFAULT_AUTO_CLOCK_OUT_HOURS))
            interval = float(timers.get("cleanup_interval_minutes", DEFAULT_CLEANUP_INTERVAL_MINUTES))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid timer value: {exc}") from exc

        return cls(
            collection_name=str(data.get("collection_name", DEFAULT_COLLECTION_NAME)),
            clock_channel_name=str(channels.get("clock_station", DEFAULT_CLOCK_CHANNEL)),
            party_finder_channel_name=str(channels.get("party_finder", DEFAULT_PARTY_FINDER_CHANNEL)),
            clocked_in_role_name=str(roles.get("clocked_in", DEFAULT_CLOCKED_IN_ROLE)),
            preference_tags=preference_tags,
            categories=tuple(categories),
            auto_clock_out_hours=auto_hours,
            cleanup_interval_minutes=interval,
        )


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}
