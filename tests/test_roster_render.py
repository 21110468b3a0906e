import datetime

import pytest

from rostercord.configuration.roster_config import CategoryRule, RosterConfig
from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import RosterEntry
from rostercord.roster.roster_render import (
    CATEGORY_FOOTER_TITLE,
    EMPTY_ROSTER_TEXT,
    MemberSnapshot,
    classify_member,
    format_remaining,
    render_clock_station,
    render_summary,
    render_summary_for_config,
)


NOW = datetime.datetime(2026, 1, 10, 20, 0, tzinfo=datetime.timezone.utc)
GUILD = GuildID(1)
CATEGORIES = (
    CategoryRule.compile("tank", "Tank"),
    CategoryRule.compile("heal|support", "Healer"),
    CategoryRule.compile("dps|damage", "DPS"),
)


def _entry(user_id: int, name: str, remaining: datetime.timedelta) -> RosterEntry:
    return RosterEntry(
        user_id=UserID(user_id),
        guild_id=GUILD,
        display_name=name,
        clock_in_time=NOW - datetime.timedelta(hours=1),
        clock_out_time=NOW + remaining,
        created_at=NOW - datetime.timedelta(hours=1),
    )


@pytest.mark.parametrize(
    ("remaining", "expected"),
    [
        (datetime.timedelta(hours=4), "4h"),
        (datetime.timedelta(hours=3, minutes=59), "3h"),
        (datetime.timedelta(hours=1), "1h"),
        (datetime.timedelta(minutes=59, seconds=59), "59m"),
        (datetime.timedelta(minutes=1), "1m"),
        (datetime.timedelta(seconds=59), "<1m"),
        (datetime.timedelta(0), "<1m"),
    ],
)
def test_format_remaining_buckets(remaining, expected):
    assert format_remaining(remaining) == expected


def test_empty_roster_renders_fixed_text():
    assert render_summary([], NOW) == EMPTY_ROSTER_TEXT


def test_expired_entries_are_not_rendered():
    expired = _entry(1, "Gone", datetime.timedelta(0))

    assert render_summary([expired], NOW) == EMPTY_ROSTER_TEXT


def test_summary_lists_entries_in_given_order():
    entries = [
        _entry(2, "Zed", datetime.timedelta(hours=2)),
        _entry(1, "Amy", datetime.timedelta(minutes=10)),
    ]

    text = render_summary(entries, NOW)

    assert text.splitlines() == [
        "**✅ Now Playing (2):**",
        "- Zed (2h)",
        "- Amy (10m)",
    ]


def test_member_snapshot_overrides_stored_display_name():
    entry = _entry(1, "OldName", datetime.timedelta(hours=1))
    members = {UserID(1): MemberSnapshot("NewName", ("Tank Main",))}

    text = render_summary([entry], NOW, members=members, categories=CATEGORIES)

    assert "- NewName [Tank] (1h)" in text
    assert "OldName" not in text


def test_category_footer_follows_table_order():
    entries = [
        _entry(1, "A", datetime.timedelta(hours=1)),
        _entry(2, "B", datetime.timedelta(hours=1)),
        _entry(3, "C", datetime.timedelta(hours=1)),
        _entry(4, "D", datetime.timedelta(hours=1)),
    ]
    members = {
        UserID(1): MemberSnapshot("A", ("DPS",)),
        UserID(2): MemberSnapshot("B", ("Support",)),
        UserID(3): MemberSnapshot("C", ("Main Tank",)),
        UserID(4): MemberSnapshot("D", ("Member",)),
    }

    lines = render_summary(entries, NOW, members=members, categories=CATEGORIES).splitlines()

    assert lines[-2] == ""
    assert lines[-1] == f"{CATEGORY_FOOTER_TITLE} Tank: 1 · Healer: 1 · DPS: 1"
    assert "- D (1h)" in lines


def test_no_footer_without_categorised_members():
    entry = _entry(1, "Solo", datetime.timedelta(hours=1))

    text = render_summary([entry], NOW, categories=CATEGORIES)

    assert CATEGORY_FOOTER_TITLE not in text


def test_first_matching_category_wins():
    assert classify_member(["Healer", "Tank"], CATEGORIES) == "Tank"
    assert classify_member(["damage dealer"], CATEGORIES) == "DPS"
    assert classify_member(["Member"], CATEGORIES) is None


def test_ignored_roles_are_not_classified():
    assert classify_member(["Tank"], CATEGORIES, ignored_roles=["Tank"]) is None


def test_preference_labels_are_listed_and_not_classified():
    entry = _entry(1, "Amy", datetime.timedelta(hours=2))
    categories = (CategoryRule.compile("pvp", "Fighter"),)
    members = {UserID(1): MemberSnapshot("Amy", ("PvP", "Chill"))}

    text = render_summary(
        [entry],
        NOW,
        members=members,
        categories=categories,
        preference_labels={"pvp": "PvP", "chill": "Chill"},
    )

    assert "- Amy · PvP, Chill (2h)" in text
    assert "[Fighter]" not in text


def test_render_summary_for_config_ignores_active_role():
    config = RosterConfig(
        clocked_in_role_name="Tank Duty",
        categories=(CategoryRule.compile("tank", "Tank"),),
    )
    entry = _entry(1, "Amy", datetime.timedelta(hours=1))
    members = {UserID(1): MemberSnapshot("Amy", ("Tank Duty",))}

    text = render_summary_for_config([entry], NOW, config, members)

    assert "[Tank]" not in text


def test_clock_station_text_mentions_channel_role_and_timer():
    config = RosterConfig(preference_tags={"pvp": "PvP"}, auto_clock_out_hours=2)

    text = render_clock_station(config)

    assert "#party-finder" in text
    assert "Clocked In role" in text
    assert "after 2 hours" in text
    assert "PvP" in text
