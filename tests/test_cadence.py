"""
Visit cadence, skip-week overrides and range limits
"""
import pytest
from pydantic import ValidationError

from careboard.database.schemas import VisitInterval, WeekState
from careboard.services.schedule import (
    due_week_indices,
    is_due_by_default,
    is_skip_week,
    toggle_skip_week,
    week_state,
)
from tests.conftest import make_patient


def test_every_other_week_cadence():
    """Test 2 weeks / 1 visit alternates due and skipped slots"""
    interval = VisitInterval(weeks=2, visits=1)
    assert [is_due_by_default(i, interval) for i in range(6)] == [True, False, True, False, True, False]


def test_two_visits_in_four_weeks():
    """Test the first two slots of each 4-week cycle are due"""
    interval = VisitInterval(weeks=4, visits=2)
    due = [i for i in range(12) if is_due_by_default(i, interval)]
    assert due == [0, 1, 4, 5, 8, 9]


def test_each_cycle_has_exactly_visits_due_slots():
    """Test every complete cycle holds `visits` due slots by default"""
    for weeks in range(1, 7):
        for visits in range(1, weeks + 1):
            interval = VisitInterval(weeks=weeks, visits=visits)
            for cycle in range(3):
                start = cycle * weeks
                due = sum(is_due_by_default(i, interval) for i in range(start, start + weeks))
                assert due == visits


def test_visit_interval_rejects_more_visits_than_weeks():
    """Test visits may not exceed the cycle length"""
    with pytest.raises(ValidationError):
        VisitInterval(weeks=1, visits=2)
    with pytest.raises(ValidationError):
        VisitInterval(weeks=0, visits=0)


def test_override_inverts_default():
    """Test listing a slot in skip_weeks flips its cadence default"""
    interval = VisitInterval(weeks=2, visits=1)
    assert not is_skip_week(0, interval, [])
    assert is_skip_week(0, interval, [0])
    assert is_skip_week(1, interval, [])
    assert not is_skip_week(1, interval, [1])


def test_toggle_skip_week_twice_restores_state():
    """Test toggling a slot twice is a no-op"""
    patient = make_patient(visit_interval=VisitInterval(weeks=3, visits=1))
    for week_index in range(12):
        once = toggle_skip_week(patient.skip_weeks, week_index)
        twice = toggle_skip_week(once, week_index)
        assert twice == patient.skip_weeks
        assert week_state(patient.model_copy(update={"skip_weeks": twice}), week_index) == week_state(patient, week_index)


def test_toggle_skip_week_keeps_list_sorted():
    """Test overrides stay sorted and unique"""
    assert toggle_skip_week([5, 1], 3) == [1, 3, 5]
    assert toggle_skip_week([1, 3, 5], 3) == [1, 5]


def test_out_of_range_dominates_overrides():
    """Test slots past visit_period * 4 are out of range whatever the overrides"""
    patient = make_patient(visit_period=1, skip_weeks=[2, 4, 5, 10])
    assert week_state(patient, 2) == WeekState.SKIP
    assert week_state(patient, 3) == WeekState.DUE
    for week_index in range(4, 36):
        assert week_state(patient, week_index) == WeekState.OUT_OF_RANGE


def test_medicine_only_patient_has_no_visit_weeks():
    """Test visit_period 0 puts every slot out of range"""
    patient = make_patient(visit_period=0)
    assert all(week_state(patient, i) == WeekState.OUT_OF_RANGE for i in range(36))
    assert due_week_indices(patient) == []


def test_due_week_indices_default_patient():
    """Test the default 3-month weekly cadence is due every week"""
    patient = make_patient()
    assert due_week_indices(patient) == list(range(12))


def test_due_week_indices_with_override():
    """Test overrides add and remove due slots"""
    patient = make_patient(visit_interval=VisitInterval(weeks=2, visits=1), skip_weeks=[0, 1])
    assert due_week_indices(patient) == [1, 2, 4, 6, 8, 10]
