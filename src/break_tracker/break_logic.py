"""
Break Logic for Break Tracking System

Classifies each shift's break and coverage state and builds the per-employee
view of who is working on a given day.
"""

from datetime import date
from typing import Dict, List, Optional, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from .data_manager import BreakEntry, Department, Employee
from .time_utils import minutes_to_time, parse_time_to_minutes, shift_hours


SECOND_BREAK_THRESHOLD_HOURS = 6.5
OVERTIME_THRESHOLD_HOURS = 8.0

# Offsets from shift start used by the quick-add action
QUICK_BREAK_OFFSETS = {1: 120, 2: 240}
QUICK_BREAK_LENGTH_MINUTES = 10


class BreakStatus(Enum):
    NO_BREAKS = "no-breaks"
    PARTIAL_BREAKS = "partial-breaks"
    ALL_BREAKS = "all-breaks"
    BREAK1_ONLY = "break1-only"

    @property
    def is_complete(self) -> bool:
        """Both terminal states count as complete for filters and the rollup"""
        return self in (BreakStatus.ALL_BREAKS, BreakStatus.BREAK1_ONLY)

    @property
    def label(self) -> str:
        return _BREAK_STATUS_LABELS[self]


class CoverageStatus(Enum):
    NO_COVERAGE_NEEDED = "no-coverage-needed"
    MISSING_COVERAGE = "missing-coverage"
    FULL_COVERAGE = "full-coverage"

    @property
    def label(self) -> str:
        return _COVERAGE_STATUS_LABELS[self]


_BREAK_STATUS_LABELS = {
    BreakStatus.NO_BREAKS: "No Breaks",
    BreakStatus.PARTIAL_BREAKS: "Partial",
    BreakStatus.ALL_BREAKS: "Complete",
    BreakStatus.BREAK1_ONLY: "Break Given",
}

_COVERAGE_STATUS_LABELS = {
    CoverageStatus.NO_COVERAGE_NEEDED: "N/A",
    CoverageStatus.MISSING_COVERAGE: "Missing",
    CoverageStatus.FULL_COVERAGE: "Covered",
}


def entry_shift_hours(entry: BreakEntry) -> float:
    return shift_hours(entry.shift_start, entry.shift_end)


def is_eligible_for_second_break(entry: BreakEntry) -> bool:
    return entry_shift_hours(entry) >= SECOND_BREAK_THRESHOLD_HOURS


def is_overtime(entry: BreakEntry) -> bool:
    return entry_shift_hours(entry) > OVERTIME_THRESHOLD_HOURS


def classify_breaks(has_break1: bool, has_break2: bool, eligible_for_break2: bool) -> BreakStatus:
    """Break status in precedence order: none, partial, all, break 1 only"""
    if not has_break1:
        return BreakStatus.NO_BREAKS
    if eligible_for_break2 and not has_break2:
        return BreakStatus.PARTIAL_BREAKS
    if eligible_for_break2 and has_break2:
        return BreakStatus.ALL_BREAKS
    return BreakStatus.BREAK1_ONLY


def classify_coverage(has_break1: bool, has_break2: bool,
                      has_coverage1: bool, has_coverage2: bool) -> CoverageStatus:
    """Each scheduled break must have its own coverage assignment"""
    if not has_break1 and not has_break2:
        return CoverageStatus.NO_COVERAGE_NEEDED
    if has_break1 and not has_coverage1:
        return CoverageStatus.MISSING_COVERAGE
    if has_break2 and not has_coverage2:
        return CoverageStatus.MISSING_COVERAGE
    return CoverageStatus.FULL_COVERAGE


def get_break_status(entry: BreakEntry) -> BreakStatus:
    return classify_breaks(entry.has_break1, entry.has_break2, is_eligible_for_second_break(entry))


def get_coverage_status(entry: BreakEntry) -> CoverageStatus:
    return classify_coverage(
        entry.has_break1,
        entry.has_break2,
        entry.coverage_employee_id is not None,
        entry.coverage2_employee_id is not None,
    )


def has_coverage_issue(entry: BreakEntry) -> bool:
    """A scheduled break without a covering employee"""
    return get_coverage_status(entry) == CoverageStatus.MISSING_COVERAGE


@dataclass
class EntryAnalysis:
    """Break and coverage details of one working employee on one day"""
    employee: Employee
    entry: BreakEntry
    shift_hours: float
    has_break1: bool
    has_break2: bool
    eligible_for_break2: bool
    has_coverage1: bool
    has_coverage2: bool
    break_status: BreakStatus
    coverage_status: CoverageStatus
    coverage_employee1: Optional[Employee] = None
    coverage_employee2: Optional[Employee] = None


def analyze_entry(entry: BreakEntry, employee: Employee,
                  employees_by_id: Dict[str, Employee]) -> EntryAnalysis:
    hours = entry_shift_hours(entry)
    eligible = hours >= SECOND_BREAK_THRESHOLD_HOURS
    has_coverage1 = entry.coverage_employee_id is not None
    has_coverage2 = entry.coverage2_employee_id is not None

    return EntryAnalysis(
        employee=employee,
        entry=entry,
        shift_hours=hours,
        has_break1=entry.has_break1,
        has_break2=entry.has_break2,
        eligible_for_break2=eligible,
        has_coverage1=has_coverage1,
        has_coverage2=has_coverage2,
        break_status=classify_breaks(entry.has_break1, entry.has_break2, eligible),
        coverage_status=classify_coverage(entry.has_break1, entry.has_break2, has_coverage1, has_coverage2),
        coverage_employee1=employees_by_id.get(entry.coverage_employee_id) if has_coverage1 else None,
        coverage_employee2=employees_by_id.get(entry.coverage2_employee_id) if has_coverage2 else None,
    )


def analyze_entries(entries: Iterable[BreakEntry], employees: Iterable[Employee],
                    target_date: date) -> List[EntryAnalysis]:
    """
    Analyze every entry recorded on target_date.

    Entries whose employee is not in the roster are skipped.
    """
    employees_by_id = {emp.id: emp for emp in employees}
    analyses = []
    for entry in entries:
        if entry.date != target_date:
            continue
        employee = employees_by_id.get(entry.employee_id)
        if employee is None:
            continue
        analyses.append(analyze_entry(entry, employee, employees_by_id))
    return analyses


STATUS_FILTERS = ("all", "missing", "partial", "complete")


def filter_analyses(analyses: Iterable[EntryAnalysis],
                    department: Optional[Department] = None,
                    status_filter: str = "all") -> List[EntryAnalysis]:
    """Restrict analyses by department and by missing/partial/complete break state"""
    if status_filter not in STATUS_FILTERS:
        raise ValueError(f"Unknown break status filter: {status_filter}")

    result = []
    for item in analyses:
        if department is not None and item.employee.department != department:
            continue
        if status_filter == "missing" and item.break_status != BreakStatus.NO_BREAKS:
            continue
        if status_filter == "partial" and item.break_status != BreakStatus.PARTIAL_BREAKS:
            continue
        if status_filter == "complete" and not item.break_status.is_complete:
            continue
        result.append(item)
    return result


def quick_add_break(entry: BreakEntry, break_number: int) -> BreakEntry:
    """
    Return a copy of entry with a default 10-minute break filled in.

    Break 1 starts two hours into the shift, break 2 four hours in. Times
    past midnight wrap to the next day.
    """
    if break_number not in QUICK_BREAK_OFFSETS:
        raise ValueError(f"Break number must be 1 or 2, got {break_number}")
    if not entry.shift_start:
        raise ValueError("Cannot place a break on an entry without a shift start")

    start = parse_time_to_minutes(entry.shift_start) + QUICK_BREAK_OFFSETS[break_number]
    break_start = minutes_to_time(start)
    break_end = minutes_to_time(start + QUICK_BREAK_LENGTH_MINUTES)

    if break_number == 1:
        return replace(entry, break1_start=break_start, break1_end=break_end)
    return replace(entry, break2_start=break_start, break2_end=break_end)
