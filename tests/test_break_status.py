"""
Test Suite for Break Logic

Covers second-break eligibility, break and coverage status precedence,
the working-employee analysis and the quick-add break action.
"""

import pytest
import sys
from datetime import date
from pathlib import Path

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from break_tracker.break_logic import (
    BreakStatus,
    CoverageStatus,
    analyze_entries,
    classify_breaks,
    filter_analyses,
    get_break_status,
    get_coverage_status,
    is_eligible_for_second_break,
    is_overtime,
    quick_add_break,
)
from break_tracker.data_manager import BreakEntry, Department, Employee

DAY = date(2025, 3, 4)


def make_entry(**kwargs):
    fields = {"id": "1", "employee_id": "1", "date": DAY,
              "shift_start": "09:00", "shift_end": "17:00"}
    fields.update(kwargs)
    return BreakEntry(**fields)


BREAK1 = {"break1_start": "11:00", "break1_end": "11:10"}
BREAK2 = {"break2_start": "14:00", "break2_end": "14:10"}


def test_second_break_eligibility_threshold():
    assert is_eligible_for_second_break(make_entry(shift_end="15:30"))  # exactly 6.5h
    assert not is_eligible_for_second_break(make_entry(shift_end="15:29"))
    assert is_eligible_for_second_break(make_entry(shift_start="20:00", shift_end="04:00"))


def test_overtime_is_strictly_over_eight_hours():
    assert not is_overtime(make_entry())  # exactly 8h
    assert is_overtime(make_entry(shift_end="17:01"))


def test_classify_breaks_uses_threshold_boundary():
    assert classify_breaks(True, False, 6.5 >= 6.5) == BreakStatus.PARTIAL_BREAKS
    assert classify_breaks(True, False, 6.49999 >= 6.5) == BreakStatus.BREAK1_ONLY


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({}, BreakStatus.NO_BREAKS),
        (BREAK1, BreakStatus.PARTIAL_BREAKS),
        ({**BREAK1, **BREAK2}, BreakStatus.ALL_BREAKS),
        ({**BREAK1, "shift_end": "13:00"}, BreakStatus.BREAK1_ONLY),
        # Break 2 on an ineligible shift does not change the classification
        ({**BREAK1, **BREAK2, "shift_end": "13:00"}, BreakStatus.BREAK1_ONLY),
        # Break 2 alone never counts as having breaks
        (BREAK2, BreakStatus.NO_BREAKS),
        ({"break1_start": "11:00"}, BreakStatus.NO_BREAKS),
    ],
)
def test_break_status_precedence(overrides, expected):
    assert get_break_status(make_entry(**overrides)) == expected


def test_break_status_values_and_completeness():
    assert BreakStatus.BREAK1_ONLY.value == "break1-only"
    assert BreakStatus.ALL_BREAKS.is_complete
    assert BreakStatus.BREAK1_ONLY.is_complete
    assert not BreakStatus.PARTIAL_BREAKS.is_complete
    assert not BreakStatus.NO_BREAKS.is_complete


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({}, CoverageStatus.NO_COVERAGE_NEEDED),
        ({**BREAK1, "coverage_employee_id": "none"}, CoverageStatus.MISSING_COVERAGE),
        ({**BREAK1}, CoverageStatus.MISSING_COVERAGE),
        ({**BREAK1, "coverage_employee_id": "2"}, CoverageStatus.FULL_COVERAGE),
        ({**BREAK1, **BREAK2, "coverage_employee_id": "2", "coverage2_employee_id": "3"},
         CoverageStatus.FULL_COVERAGE),
        ({**BREAK1, **BREAK2, "coverage_employee_id": "2"}, CoverageStatus.MISSING_COVERAGE),
        ({**BREAK1, **BREAK2, "coverage2_employee_id": "3"}, CoverageStatus.MISSING_COVERAGE),
        ({**BREAK2, "coverage2_employee_id": "3"}, CoverageStatus.FULL_COVERAGE),
        # Coverage without a scheduled break needs nothing
        ({"coverage_employee_id": "2"}, CoverageStatus.NO_COVERAGE_NEEDED),
    ],
)
def test_coverage_status(overrides, expected):
    assert get_coverage_status(make_entry(**overrides)) == expected


def test_none_sentinel_and_empty_string_mean_no_coverage():
    assert make_entry(coverage_employee_id="none").coverage_employee_id is None
    assert make_entry(coverage2_employee_id="").coverage2_employee_id is None
    entry = BreakEntry.from_dict({
        "id": "9", "employeeId": "1", "date": "2025-03-04T15:00:00.000Z",
        "shiftStart": "09:00", "shiftEnd": "17:00", "coverageEmployeeId": "none",
    })
    assert entry.coverage_employee_id is None
    assert entry.date == DAY


@pytest.fixture
def roster():
    return [
        Employee(id="1", name="Alice", department=Department.RBT),
        Employee(id="2", name="Bob", department=Department.OPERATIONS),
        Employee(id="3", name="Cara", department=Department.BCBA),
    ]


def test_analyze_entries_for_day(roster):
    entries = [
        make_entry(id="1", employee_id="1", coverage_employee_id="2", **BREAK1),
        make_entry(id="2", employee_id="2", shift_end="13:00"),
        make_entry(id="3", employee_id="99"),  # unknown employee
        make_entry(id="4", employee_id="3", date=date(2025, 3, 5)),  # other day
    ]
    analyses = analyze_entries(entries, roster, DAY)

    assert [a.employee.name for a in analyses] == ["Alice", "Bob"]
    alice = analyses[0]
    assert alice.shift_hours == 8.0
    assert alice.eligible_for_break2
    assert alice.break_status == BreakStatus.PARTIAL_BREAKS
    assert alice.coverage_status == CoverageStatus.FULL_COVERAGE
    assert alice.coverage_employee1.name == "Bob"
    assert alice.coverage_employee2 is None
    assert analyses[1].break_status == BreakStatus.NO_BREAKS


def test_filter_analyses(roster):
    entries = [
        make_entry(id="1", employee_id="1", **BREAK1, **BREAK2),
        make_entry(id="2", employee_id="2", **BREAK1),
        make_entry(id="3", employee_id="3"),
    ]
    analyses = analyze_entries(entries, roster, DAY)

    assert [a.employee.id for a in filter_analyses(analyses, status_filter="complete")] == ["1"]
    assert [a.employee.id for a in filter_analyses(analyses, status_filter="partial")] == ["2"]
    assert [a.employee.id for a in filter_analyses(analyses, status_filter="missing")] == ["3"]
    assert [a.employee.id for a in filter_analyses(analyses, department=Department.OPERATIONS)] == ["2"]
    assert len(filter_analyses(analyses)) == 3

    with pytest.raises(ValueError):
        filter_analyses(analyses, status_filter="given")


def test_quick_add_break():
    entry = make_entry()
    with_break1 = quick_add_break(entry, 1)
    assert (with_break1.break1_start, with_break1.break1_end) == ("11:00", "11:10")
    assert entry.break1_start is None  # input left unchanged

    with_break2 = quick_add_break(with_break1, 2)
    assert (with_break2.break2_start, with_break2.break2_end) == ("13:00", "13:10")
    assert get_break_status(with_break2) == BreakStatus.ALL_BREAKS


def test_quick_add_break_wraps_past_midnight():
    entry = make_entry(shift_start="22:55", shift_end="06:00")
    added = quick_add_break(entry, 1)
    assert (added.break1_start, added.break1_end) == ("00:55", "01:05")


def test_quick_add_break_rejects_unknown_break():
    with pytest.raises(ValueError):
        quick_add_break(make_entry(), 3)


def test_quick_add_break_needs_shift_start():
    with pytest.raises(ValueError, match="shift start"):
        quick_add_break(make_entry(shift_start=""), 1)
