from __future__ import annotations

import pytest

from mousevr.trial import Choice, SessionParameters, TrialRecord, TrialState, ZoneEvent


@pytest.mark.parametrize(
    "name, object_id",
    [
        ("_left_r_", "left"),
        ("_End_r_", "end"),
        ("target_r", "target"),
        ("_right_rr_", "right"),
    ],
)
def test_zone_names_decode(name: str, object_id: str) -> None:
    event = ZoneEvent.from_name(name)
    assert event is not None
    assert event.object_id == object_id
    assert event.trigger
    assert event.name == name


@pytest.mark.parametrize("name", ["_left_", "wall", "_left_x_", "_a_b_r_", "", "_left_R_"])
def test_non_trigger_names_are_ignored(name: str) -> None:
    assert ZoneEvent.from_name(name) is None


def test_choice_opposite() -> None:
    assert Choice.LEFT.opposite() is Choice.RIGHT
    assert Choice.RIGHT.opposite() is Choice.LEFT
    assert Choice.NONE.opposite() is Choice.LEFT


def test_record_snapshot_and_summary() -> None:
    record = TrialRecord(state=TrialState.SUCCESS, trial=3, correct=2, reward_ul=20, choice=Choice.LEFT)

    entry = record.snapshot()

    assert entry.state == "SUCCESS"
    assert entry.choice == "LEFT"
    assert entry.target == "NONE"
    assert entry.as_dict()["kind"] == "trial"
    assert record.summary() == "trial: 3, correct: 2"


def test_parameters_log_entry() -> None:
    params = SessionParameters(subject="m01", task="avoidance", n_trial=50, reward_amount_ul=4, note="pilot")
    entry = params.log_entry().as_dict()

    assert entry["kind"] == "parameters"
    assert entry["n_trial"] == 50
    assert entry["note"] == "pilot"
