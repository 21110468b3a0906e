"""Text rendering for the roster summary and the clock-station message.

Everything here is a pure function of its arguments: no Discord calls, no
store access, no clock reads. The Discord adapter gathers member snapshots
and passes them in.
"""

from __future__ import annotations

import datetime
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Sequence

from rostercord.configuration.roster_config import CategoryRule, RosterConfig
from rostercord.datatypes.discord_datatypes import UserID
from rostercord.datatypes.roster_datatypes import RosterEntry

EMPTY_ROSTER_TEXT = "**✅ Now Playing:**\nNobody is clocked in."
ROSTER_HEADER = "**✅ Now Playing ({count}):**"
CATEGORY_FOOTER_TITLE = "**By role:**"


@dataclass(frozen=True)
class MemberSnapshot:
    """Current view of a roster member, as seen by the platform."""

    display_name: str
    role_names: tuple[str, ...] = field(default_factory=tuple)


def format_remaining(remaining: datetime.timedelta) -> str:
    """Bucket a remaining duration into ``"<H>h"``, ``"<M>m"`` or ``"<1m"``.

    Hours and minutes are floored, so 3h59m renders as ``"3h"``.
    """
    total_seconds = int(remaining.total_seconds())
    if total_seconds >= 3600:
        return f"{total_seconds // 3600}h"
    if total_seconds >= 60:
        return f"{total_seconds // 60}m"
    return "<1m"


def classify_member(
    role_names: Iterable[str],
    categories: Sequence[CategoryRule],
    *,
    ignored_roles: Iterable[str] = (),
) -> Optional[str]:
    """Return the label of the first category whose pattern matches any role name."""
    ignored = set(ignored_roles)
    candidates = [name for name in role_names if name not in ignored]
    for rule in categories:
        if any(rule.matches(name) for name in candidates):
            return rule.label
    return None


def render_summary(
    entries: Sequence[RosterEntry],
    now: datetime.datetime,
    *,
    members: Optional[Mapping[UserID, MemberSnapshot]] = None,
    categories: Sequence[CategoryRule] = (),
    preference_labels: Optional[Mapping[str, str]] = None,
    ignored_roles: Iterable[str] = (),
) -> str:
    """Render the roster summary text.

    Args:
        entries: Roster entries in query order; expired ones are skipped.
        now: Evaluation time for expiry and remaining-time buckets.
        members: Optional current member snapshots keyed by user id.
        categories: Ordered classification table, first match wins.
        preference_labels: Tag -> label of the preference roles; held labels
            are listed after the member's name.
        ignored_roles: Role names never considered for classification.

    Returns:
        The message content. Entry order is the order of ``entries``.
    """
    active = [entry for entry in entries if entry.is_active(now)]
    if not active:
        return EMPTY_ROSTER_TEXT

    members = members or {}
    labels = list((preference_labels or {}).values())
    ignored = set(ignored_roles) | set(labels)
    category_counts: Counter[str] = Counter()

    lines = [ROSTER_HEADER.format(count=len(active))]
    for entry in active:
        snapshot = members.get(entry.user_id)
        name = snapshot.display_name if snapshot else entry.display_name
        role_names = snapshot.role_names if snapshot else ()

        line = f"- {name}"
        category = classify_member(role_names, categories, ignored_roles=ignored)
        if category:
            category_counts[category] += 1
            line += f" [{category}]"

        held = [label for label in labels if label in role_names]
        if held:
            line += " · " + ", ".join(held)

        line += f" ({format_remaining(entry.remaining(now))})"
        lines.append(line)

    if category_counts:
        ordered = _ordered_counts(category_counts, categories)
        lines.append("")
        lines.append(CATEGORY_FOOTER_TITLE + " " + " · ".join(f"{label}: {count}" for label, count in ordered.items()))

    return "\n".join(lines)


def _ordered_counts(counts: Counter[str], categories: Sequence[CategoryRule]) -> Dict[str, int]:
    ordered: Dict[str, int] = {}
    for rule in categories:
        if rule.label in counts and rule.label not in ordered:
            ordered[rule.label] = counts[rule.label]
    return ordered


def render_clock_station(config: RosterConfig) -> str:
    """Render the pinned clock-station text for the control channel."""
    hours = config.auto_clock_out_hours
    hours_text = f"{hours:g} hour" + ("" if hours == 1 else "s")
    lines = [
        "**⏰ Clock Station**",
        "",
        "Use the buttons below to clock in or out. Clocking in gives you access to "
        f"#{config.party_finder_channel_name}!",
        "",
        f"• **Clock In**: Get the {config.clocked_in_role_name} role and access to #{config.party_finder_channel_name}",
        f"• **Clock Out**: Remove the role and lose access to #{config.party_finder_channel_name}",
    ]
    if config.preference_tags:
        labels = ", ".join(config.preference_tags.values())
        lines.append(f"• **Preferences** ({labels}): toggle while clocked in; **Clear** removes them all")
    lines.append("")
    lines.append(f"*You'll be automatically clocked out after {hours_text}.*")
    return "\n".join(lines)


def render_summary_for_config(
    entries: Sequence[RosterEntry],
    now: datetime.datetime,
    config: RosterConfig,
    members: Optional[Mapping[UserID, MemberSnapshot]] = None,
) -> str:
    """``render_summary`` with the classification inputs taken from ``config``."""
    return render_summary(
        entries,
        now,
        members=members,
        categories=config.categories,
        preference_labels=config.preference_labels,
        ignored_roles=config.managed_role_names,
    )
