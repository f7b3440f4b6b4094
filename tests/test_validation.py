"""
Unit tests for the coding-sheet schema validator.

Tests cover:
- Line-length gating
- Integer, enum, timestamp and text cell checks
- Per-table contracts (including the Utterances spatial deictic column)
"""

import logging

import pytest

from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import FieldKind, TableKind
from ar_study_pipeline.data_processing.validation import (
    ValidationSettings,
    check_enum,
    check_integer,
    check_text,
    check_timestamp,
    field_specs,
    validate_table,
)

GESTURE_HEADER = ["Team", "Video", "Time", "Description", "Gesturer", "Target", "Intent"]
UTTERANCE_HEADER = ["Team", "Video", "Time", "Purpose", "Speaker", "Deictic", "Spatial"]


class TestIntegerCheck:
    """Integer parsing and inclusive range checks."""

    def test_in_range(self):
        assert check_integer("5", "Team number", 1, 10) == []

    def test_bounds_are_inclusive(self):
        assert check_integer("1", "Team number", 1, 10) == []
        assert check_integer("10", "Team number", 1, 10) == []

    def test_out_of_range_single_issue(self):
        issues = check_integer("11", "Team number", 1, 10)
        assert len(issues) == 1
        assert "outside the expected range" in issues[0]

    def test_not_an_integer_single_issue(self):
        issues = check_integer("abc", "Team number", 1, 10)
        assert len(issues) == 1
        assert "is not valid" in issues[0]
        assert '"abc"' in issues[0]
        assert "1 - 10" in issues[0]

    def test_unranged(self):
        assert check_integer("-3", "Deictic Pronouns") == []
        issues = check_integer("2.5", "Deictic Pronouns")
        assert issues == ['Deictic Pronouns is not valid. Read: "2.5", expected an integer value.']

    def test_empty_is_not_valid(self):
        assert "is not valid" in check_integer("", "Gesturer", 1, 2)[0]


class TestEnumCheck:
    """Enumerated string checks."""

    def test_case_insensitive(self):
        assert check_enum("s", "Target", ("s", "o", "c", "b")) == []
        assert check_enum("S", "Target", ("s", "o", "c", "b")) == []

    def test_empty_has_its_own_message(self):
        issues = check_enum("", "Target", ("s", "o", "c", "b"))
        assert len(issues) == 1
        assert "is empty" in issues[0]
        assert "is invalid" not in issues[0]

    def test_invalid_lists_own_vocabulary(self):
        issues = check_enum("x", "Intent", ("r", "d", "v", "c"))
        assert len(issues) == 1
        assert "is invalid" in issues[0]
        assert "r, d, v, c" in issues[0]

    def test_case_sensitive_video_names(self):
        names = ("Desktop", "Desktop1", "Desktop2", "Hololens")
        assert check_enum("Hololens", "Video name", names, case_sensitive=True) == []
        assert len(check_enum("hololens", "Video name", names, case_sensitive=True)) == 1


class TestTimestampCheck:
    """mm:ss / m:ss format."""

    @pytest.mark.parametrize("value", ["5:09", "05:09", "59:59", "0:00"])
    def test_valid(self, value):
        assert check_timestamp(value) == []

    @pytest.mark.parametrize("value", ["5:60", "abc", "123:00", "1:00:00", "5:9", " 5:09"])
    def test_invalid_format(self, value):
        issues = check_timestamp(value)
        assert len(issues) == 1
        assert "invalid format" in issues[0]

    def test_empty(self):
        issues = check_timestamp("")
        assert len(issues) == 1
        assert "is empty" in issues[0]


class TestTextCheck:
    def test_only_emptiness_matters(self):
        assert check_text("points at the bars", "Gesture description") == []
        assert check_text("", "Gesture description") == [
            "Gesture description is empty. Expected a non-empty description."
        ]


class TestFieldSpecs:
    """Per-table contracts."""

    def test_column_counts_match_contracts(self):
        for kind in TableKind:
            specs = field_specs(kind)
            assert len(specs) == kind.column_count

    def test_team_range_from_settings(self):
        specs = field_specs(TableKind.LOOKS, ValidationSettings(num_teams=4))
        team = specs[0]
        assert team.kind is FieldKind.INTEGER
        assert (team.min_value, team.max_value) == (1, 4)

    def test_spatial_deictic_reads_pronoun_column_by_default(self):
        specs = {s.name: s for s in field_specs(TableKind.UTTERANCES)}
        assert specs["Deictic Pronouns"].column == 5
        assert specs["Spatial Deictic"].column == 5

    def test_spatial_deictic_column_configurable(self):
        specs = {s.name: s for s in field_specs(TableKind.UTTERANCES, ValidationSettings(spatial_deictic_column=6))}
        assert specs["Spatial Deictic"].column == 6


class TestValidateTable:
    """Whole-table validation into an IssueLog."""

    def test_valid_gestures(self):
        rows = [GESTURE_HEADER, ["1", "Hololens", "5:09", "points", "1", "S", "r"]]
        issues = IssueLog()
        assert validate_table(rows, TableKind.GESTURES, issues) is True
        assert issues["Gestures"] == []

    def test_header_is_skipped(self):
        issues = IssueLog()
        assert validate_table([GESTURE_HEADER], TableKind.GESTURES, issues) is True

    def test_wrong_length_gives_exactly_one_issue(self):
        rows = [GESTURE_HEADER, ["99", "Nope", "xx"]]
        issues = IssueLog()
        assert validate_table(rows, TableKind.GESTURES, issues) is False
        found = issues["Gestures"]
        assert len(found) == 1
        assert found[0].line == 1
        assert "expected number of values" in found[0].message

    def test_bad_rows_do_not_hide_later_rows(self):
        rows = [
            GESTURE_HEADER,
            ["1", "Hololens"],
            ["1", "Hololens", "5:09", "points", "3", "s", "r"],
        ]
        issues = IssueLog()
        validate_table(rows, TableKind.GESTURES, issues)
        lines = [i.line for i in issues["Gestures"]]
        assert lines == [1, 2]
        assert "Gesturer is outside the expected range" in issues["Gestures"][1].message

    def test_issue_text_has_table_and_line(self):
        rows = [["h"] * 4, ["1", "Desktop", "1:00", "7"]]
        issues = IssueLog()
        validate_table(rows, TableKind.LOOKS, issues)
        assert str(issues["Looks"][0]).startswith("Looks line 1 - Initiator is outside the expected range")

    def test_utterances_count_trial_range(self):
        rows = [["h"] * 8, ["2", "Desktop1", "13", "0", "1", "2", "3", "4"]]
        issues = IssueLog()
        validate_table(rows, TableKind.UTTERANCES_COUNT, issues, ValidationSettings(num_trials=12))
        assert len(issues["Utterances Count"]) == 1
        assert "Trial number" in issues["Utterances Count"][0].message


class TestSpatialDeicticColumn:
    """The spatial deictic count is validated from column 5 unless configured otherwise."""

    def test_default_double_reports_pronoun_column(self):
        rows = [UTTERANCE_HEADER, ["1", "Hololens", "2:00", "r", "1", "x", "2"]]
        issues = IssueLog()
        validate_table(rows, TableKind.UTTERANCES, issues)
        messages = [i.message for i in issues["Utterances"]]
        assert len(messages) == 2
        assert messages[0].startswith("Deictic Pronouns is not valid")
        assert messages[1].startswith("Spatial Deictic is not valid")

    def test_default_misses_bad_spatial_column(self):
        rows = [UTTERANCE_HEADER, ["1", "Hololens", "2:00", "r", "1", "2", "x"]]
        issues = IssueLog()
        assert validate_table(rows, TableKind.UTTERANCES, issues) is True

    def test_configured_column_catches_bad_spatial_value(self):
        rows = [UTTERANCE_HEADER, ["1", "Hololens", "2:00", "r", "1", "2", "x"]]
        issues = IssueLog()
        settings = ValidationSettings(spatial_deictic_column=6)
        assert validate_table(rows, TableKind.UTTERANCES, issues, settings) is False
        assert issues["Utterances"][0].message.startswith("Spatial Deictic is not valid")

    def test_shared_column_is_warned(self, caplog):
        rows = [UTTERANCE_HEADER]
        with caplog.at_level(logging.WARNING):
            validate_table(rows, TableKind.UTTERANCES, IssueLog())
        assert any("same column" in r.getMessage() for r in caplog.records)
