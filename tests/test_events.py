"""
Unit tests for the event transformer (Gestures/Looks/Utterances -> one timeline).
"""

from ar_study_pipeline.data_processing.events import (
    TRANSFORM_GROUP,
    modality_of,
    transform_events,
    write_event_table,
)
from ar_study_pipeline.data_processing.issues import IssueLog
from ar_study_pipeline.data_processing.schemas import EVENT_TABLE_HEADER, TableKind
from ar_study_pipeline.data_processing.trials import load_trials

TRIALS = [
    ["Team", "Trial", "Modality", "Chart", "Task Type", "Task Number", "Video", "Start", "End"],
    ["1", "T1", "Hololens", "Bar", "Compare", "1", "Hololens", "1:00", "3:00"],
    ["1", "T4", "Desktop", "Line", "Trend", "4", "Desktop2", "10:00", "12:30"],
]

GESTURES = [
    ["Team", "Video", "Time", "Description", "Gesturer", "Target", "Intent"],
    ["1", "Hololens", "2:15", "points at bar", "1", "s", "r"],
]
LOOKS = [
    ["Team", "Video", "Time", "Initiator"],
    ["1", "Desktop2", "11:05", "2"],
]
UTTERANCES = [
    ["Team", "Video", "Time", "Purpose", "Speaker", "Deictic", "Spatial"],
    ["1", "Hololens", "1:30", "p", "2", "3", "1"],
]


def _run(tables):
    issues = IssueLog()
    trials = load_trials(TRIALS, issues)
    return transform_events(tables, trials, issues), issues


class TestModality:
    def test_collapses_desktop_variants(self):
        assert modality_of("Desktop") == "Desktop"
        assert modality_of("Desktop1") == "Desktop"
        assert modality_of("Desktop2") == "Desktop"
        assert modality_of("Hololens") == "Hololens"


class TestTransformEvents:
    """Trial matching and field mapping."""

    def test_single_gesture_trial_time(self):
        events, issues = _run({TableKind.GESTURES: GESTURES})
        assert len(events) == 1
        e = events[0]
        assert e.trial == "T1"
        assert e.trial_time == "01:15"  # 2:15 - 1:00
        assert e.event_type == "Gesture"
        assert e.participant == "1"
        assert (e.action, e.action_target, e.action_intent) == ("points at bar", "s", "r")
        assert (e.chart_type, e.task_type, e.task_number) == ("Bar", "Compare", "1")
        assert e.utterance_purpose == ""
        assert issues[TRANSFORM_GROUP] == []

    def test_table_order_gestures_looks_utterances(self):
        events, _ = _run({TableKind.UTTERANCES: UTTERANCES, TableKind.LOOKS: LOOKS, TableKind.GESTURES: GESTURES})
        assert [e.event_type for e in events] == ["Gesture", "Look", "Utterance"]

    def test_look_fields(self):
        events, _ = _run({TableKind.LOOKS: LOOKS})
        e = events[0]
        assert e.modality == "Desktop"
        assert e.trial == "T4"
        assert e.trial_time == "01:05"
        assert e.participant == "2"
        assert e.action == e.action_target == e.action_intent == ""

    def test_utterance_fields(self):
        events, _ = _run({TableKind.UTTERANCES: UTTERANCES})
        e = events[0]
        assert e.utterance_purpose == "p"
        assert e.deictic_pronouns == "3"
        assert e.spatial_deictic == "1"
        assert e.trial_time == "00:30"

    def test_unmatched_event_kept_with_blank_trial_fields(self):
        looks = [LOOKS[0], ["1", "Hololens", "9:00", "1"]]
        events, issues = _run({TableKind.LOOKS: looks})
        assert len(events) == 1
        e = events[0]
        assert e.team == "1"
        assert e.modality == "Hololens"
        assert (e.trial, e.trial_time, e.chart_type, e.task_type, e.task_number) == ("", "", "", "", "")
        found = issues[TRANSFORM_GROUP]
        assert len(found) == 1
        assert found[0].source == "Looks"
        assert found[0].line == 1
        assert "outside of all trial times" in found[0].message

    def test_short_row_produces_no_event(self):
        gestures = [GESTURES[0], ["1", "Hololens"], GESTURES[1]]
        events, issues = _run({TableKind.GESTURES: gestures})
        assert len(events) == 1
        assert issues[TRANSFORM_GROUP][0].line == 1

    def test_unparsable_timestamp_kept_blank(self):
        gestures = [GESTURES[0], ["1", "Hololens", "soon", "wave", "1", "s", "r"]]
        events, issues = _run({TableKind.GESTURES: gestures})
        assert len(events) == 1
        assert events[0].trial == ""
        assert "could not be parsed" in issues[TRANSFORM_GROUP][0].message

    def test_missing_tables_contribute_nothing(self):
        events, _ = _run({})
        assert events == []


class TestEventTable:
    """Written event table: header plus raw comma-joined cells."""

    def test_constant_columns(self, tmp_path):
        events, _ = _run({TableKind.GESTURES: GESTURES, TableKind.LOOKS: LOOKS, TableKind.UTTERANCES: UTTERANCES})
        path = write_event_table(tmp_path / "events.csv", events)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == ",".join(EVENT_TABLE_HEADER)
        assert len(lines) == 4
        assert all(len(line.split(",")) == len(EVENT_TABLE_HEADER) for line in lines)
        # Look rows leave the action fields empty
        assert lines[2].split(",")[9] == ""

    def test_quotes_written_unescaped(self, tmp_path):
        gestures = [GESTURES[0], ["1", "Hololens", "2:15", 'points at "this" bar', "1", "s", "r"]]
        events, _ = _run({TableKind.GESTURES: gestures})
        path = write_event_table(tmp_path / "events.csv", events)
        fields = path.read_text(encoding="utf-8").splitlines()[1].split(",")
        assert fields[9] == 'points at "this" bar'

    def test_empty_table_has_header(self, tmp_path):
        path = write_event_table(tmp_path / "events.csv", [])
        assert path.read_text(encoding="utf-8").splitlines() == [",".join(EVENT_TABLE_HEADER)]
