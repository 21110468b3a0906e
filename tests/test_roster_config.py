import datetime

import pytest

from rostercord.configuration.roster_config import MAX_PREFERENCE_TAGS, CategoryRule, RosterConfig
from rostercord.datatypes.roster_datatypes import ConfigurationError


def test_defaults_apply_for_missing_section():
    config = RosterConfig.from_mapping(None)

    assert config.collection_name == "roster"
    assert config.clock_channel_name == "clock-station"
    assert config.party_finder_channel_name == "party-finder"
    assert config.clocked_in_role_name == "Clocked In"
    assert config.preference_tags == {}
    assert config.categories == ()
    assert config.clock_out_after == datetime.timedelta(hours=4)
    assert config.cleanup_interval_minutes == 5.0


def test_from_mapping_reads_every_section():
    config = RosterConfig.from_mapping(
        {
            "collection_name": "shifts",
            "channels": {"clock_station": "timeclock", "party_finder": "lfg"},
            "roles": {"clocked_in": "On Shift"},
            "preference_tags": {"PvP": "PvP", "chill": "Chill"},
            "categories": [{"pattern": "tank", "label": "Tank"}],
            "timers": {"auto_clock_out_hours": 2, "cleanup_interval_minutes": 1},
        }
    )

    assert config.collection_name == "shifts"
    assert config.clock_channel_name == "timeclock"
    assert config.party_finder_channel_name == "lfg"
    assert config.clocked_in_role_name == "On Shift"
    assert list(config.preference_tags) == ["pvp", "chill"]
    assert config.categories[0].label == "Tank"
    assert config.clock_out_after == datetime.timedelta(hours=2)
    assert config.cleanup_interval_minutes == 1.0
    assert config.managed_role_names == frozenset({"On Shift", "PvP", "Chill"})


@pytest.mark.parametrize(
    "data",
    [
        {"collection_name": "roster; DROP TABLE x"},
        {"timers": {"auto_clock_out_hours": 0}},
        {"timers": {"cleanup_interval_minutes": -1}},
        {"timers": {"auto_clock_out_hours": "soon"}},
        {"preference_tags": {"clear": "Clear"}},
        {"preference_tags": ["pvp"]},
        {"categories": {"pattern": "tank"}},
        {"categories": [{"pattern": "tank"}]},
        {"categories": [{"pattern": "(", "label": "Broken"}]},
    ],
)
def test_invalid_values_raise_configuration_error(data):
    with pytest.raises(ConfigurationError):
        RosterConfig.from_mapping(data)


def test_category_rule_matches_case_insensitively():
    rule = CategoryRule.compile("heal|support", "Healer")

    assert rule.matches("Main HEALER")
    assert rule.matches("support")
    assert not rule.matches("Tank")


def test_preference_tags_are_capped_to_clock_station_rows():
    tags = {f"tag{index}": f"Tag {index}" for index in range(MAX_PREFERENCE_TAGS + 1)}

    with pytest.raises(ConfigurationError):
        RosterConfig(preference_tags=tags)

    del tags[f"tag{MAX_PREFERENCE_TAGS}"]
    assert len(RosterConfig(preference_tags=tags).preference_tags) == MAX_PREFERENCE_TAGS
