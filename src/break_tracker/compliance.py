"""
Compliance Statistics for Break Tracking System

Rolls a day's break entries up into the management overview statistics and
turns threshold breaches into notifications.
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Any, Iterable
from dataclasses import dataclass, field, asdict
import logging

from .break_logic import (
    OVERTIME_THRESHOLD_HOURS,
    SECOND_BREAK_THRESHOLD_HOURS,
    classify_breaks,
    entry_shift_hours,
    has_coverage_issue,
    BreakStatus,
)
from .data_manager import BreakEntry, Department, Employee

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 10


@dataclass
class DetailedStats:
    """Statistics snapshot for one calendar day"""
    total_employees: int = 0
    missing_breaks: int = 0
    coverage_issues: int = 0
    overtime_alerts: int = 0
    department_breakdown: Dict[Department, int] = field(
        default_factory=lambda: {dept: 0 for dept in Department}
    )
    total_shift_hours: float = 0.0
    average_shift_length: float = 0.0
    break_compliance_rate: float = 0.0
    coverage_compliance_rate: float = 0.0
    longest_shift: float = 0.0
    shortest_shift: float = 0.0
    employees_with_full_breaks: int = 0
    employees_with_partial_breaks: int = 0
    employees_with_no_breaks: int = 0
    total_breaks_scheduled: int = 0
    total_coverage_assigned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalEmployees": self.total_employees,
            "missingBreaks": self.missing_breaks,
            "coverageIssues": self.coverage_issues,
            "overtimeAlerts": self.overtime_alerts,
            "departmentBreakdown": {dept.value: count for dept, count in self.department_breakdown.items()},
            "totalShiftHours": self.total_shift_hours,
            "averageShiftLength": self.average_shift_length,
            "breakComplianceRate": self.break_compliance_rate,
            "coverageComplianceRate": self.coverage_compliance_rate,
            "longestShift": self.longest_shift,
            "shortestShift": self.shortest_shift,
            "employeesWithFullBreaks": self.employees_with_full_breaks,
            "employeesWithPartialBreaks": self.employees_with_partial_breaks,
            "employeesWithNoBreaks": self.employees_with_no_breaks,
            "totalBreaksScheduled": self.total_breaks_scheduled,
            "totalCoverageAssigned": self.total_coverage_assigned,
        }


def calculate_detailed_stats(entries: Iterable[BreakEntry], employees: Iterable[Employee],
                             target_date: date) -> DetailedStats:
    """
    Compute the statistics snapshot for target_date.

    Pure function of its inputs: entries from other days are ignored and
    entries whose employee is unknown still count everywhere except the
    department breakdown.
    """
    day_entries = [entry for entry in entries if entry.date == target_date]
    departments_by_id = {emp.id: emp.department for emp in employees}
    stats = DetailedStats()

    stats.total_employees = len(day_entries)
    stats.missing_breaks = sum(1 for entry in day_entries if not entry.has_break1)
    stats.coverage_issues = sum(1 for entry in day_entries if has_coverage_issue(entry))

    for entry in day_entries:
        department = departments_by_id.get(entry.employee_id)
        if department is not None:
            stats.department_breakdown[department] += 1

    # Shift analysis
    hours = [entry_shift_hours(entry) for entry in day_entries]
    stats.total_shift_hours = sum(hours)
    if hours:
        stats.average_shift_length = stats.total_shift_hours / len(hours)
        stats.longest_shift = max(hours)
        stats.shortest_shift = min(hours)
    stats.overtime_alerts = sum(1 for h in hours if h > OVERTIME_THRESHOLD_HOURS)

    # Break analysis
    for entry, entry_hours in zip(day_entries, hours):
        if entry.has_break1:
            stats.total_breaks_scheduled += 1
        if entry.has_break2:
            stats.total_breaks_scheduled += 1

        # Coverage counts whether or not the matching break is scheduled
        if entry.coverage_employee_id is not None:
            stats.total_coverage_assigned += 1
        if entry.coverage2_employee_id is not None:
            stats.total_coverage_assigned += 1

        status = classify_breaks(entry.has_break1, entry.has_break2,
                                 entry_hours >= SECOND_BREAK_THRESHOLD_HOURS)
        if status == BreakStatus.NO_BREAKS:
            stats.employees_with_no_breaks += 1
        elif status == BreakStatus.PARTIAL_BREAKS:
            stats.employees_with_partial_breaks += 1
        else:
            stats.employees_with_full_breaks += 1

    if stats.total_employees > 0:
        with_breaks = stats.employees_with_full_breaks + stats.employees_with_partial_breaks
        stats.break_compliance_rate = with_breaks / stats.total_employees * 100
    if stats.total_breaks_scheduled > 0:
        stats.coverage_compliance_rate = stats.total_coverage_assigned / stats.total_breaks_scheduled * 100

    return stats


def compliance_rating(rate: float) -> str:
    if rate >= 90:
        return "Excellent"
    if rate >= 70:
        return "Good"
    return "Needs Attention"


@dataclass
class NotificationThresholds:
    """Alert thresholds for the management overview"""
    break_compliance: float = 85
    coverage_compliance: float = 90
    overtime_limit: int = 3
    missing_breaks_limit: int = 2

    SETTINGS_KEY = "notificationThresholds"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakCompliance": self.break_compliance,
            "coverageCompliance": self.coverage_compliance,
            "overtimeLimit": self.overtime_limit,
            "missingBreaksLimit": self.missing_breaks_limit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationThresholds':
        defaults = cls()
        return cls(
            break_compliance=data.get("breakCompliance", defaults.break_compliance),
            coverage_compliance=data.get("coverageCompliance", defaults.coverage_compliance),
            overtime_limit=data.get("overtimeLimit", defaults.overtime_limit),
            missing_breaks_limit=data.get("missingBreaksLimit", defaults.missing_breaks_limit),
        )

    @classmethod
    def load(cls, data_manager) -> 'NotificationThresholds':
        return cls.from_dict(data_manager.get_setting(cls.SETTINGS_KEY) or {})

    def save(self, data_manager):
        data_manager.set_setting(self.SETTINGS_KEY, self.to_dict())


@dataclass
class Notification:
    id: str
    type: str  # "warning", "error" or "info"
    title: str
    message: str
    timestamp: datetime
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def evaluate_thresholds(stats: DetailedStats, thresholds: NotificationThresholds,
                        now: Optional[datetime] = None) -> List[Notification]:
    """Build a notification for every threshold the statistics breach"""
    now = now or datetime.now()
    stamp = int(now.timestamp() * 1000)
    notifications = []

    if stats.total_employees > 0 and stats.break_compliance_rate < thresholds.break_compliance:
        notifications.append(Notification(
            id=f"break-compliance-{stamp}",
            type="warning",
            title="Break Compliance Below Threshold",
            message=(f"Break compliance rate is {stats.break_compliance_rate:.1f}%, "
                     f"below the {thresholds.break_compliance:g}% threshold."),
            timestamp=now,
        ))

    if stats.total_breaks_scheduled > 0 and stats.coverage_compliance_rate < thresholds.coverage_compliance:
        notifications.append(Notification(
            id=f"coverage-compliance-{stamp}",
            type="warning",
            title="Coverage Compliance Below Threshold",
            message=(f"Coverage compliance rate is {stats.coverage_compliance_rate:.1f}%, "
                     f"below the {thresholds.coverage_compliance:g}% threshold."),
            timestamp=now,
        ))

    if stats.overtime_alerts > thresholds.overtime_limit:
        notifications.append(Notification(
            id=f"overtime-limit-{stamp}",
            type="error",
            title="Overtime Limit Exceeded",
            message=(f"{stats.overtime_alerts} employees are working overtime, "
                     f"exceeding the limit of {thresholds.overtime_limit}."),
            timestamp=now,
        ))

    if stats.missing_breaks > thresholds.missing_breaks_limit:
        notifications.append(Notification(
            id=f"missing-breaks-limit-{stamp}",
            type="error",
            title="Too Many Missing Breaks",
            message=(f"{stats.missing_breaks} employees are missing breaks, "
                     f"exceeding the limit of {thresholds.missing_breaks_limit}."),
            timestamp=now,
        ))

    return notifications


class NotificationCenter:
    """Keeps the most recent threshold notifications, one per title"""

    def __init__(self, thresholds: Optional[NotificationThresholds] = None, enabled: bool = True):
        self.thresholds = thresholds or NotificationThresholds()
        self.enabled = enabled
        self.notifications: List[Notification] = []

    def refresh(self, stats: DetailedStats, now: Optional[datetime] = None) -> List[Notification]:
        """Add notifications for new breaches; returns the ones added"""
        if not self.enabled:
            return []

        existing_titles = {n.title for n in self.notifications}
        new = [n for n in evaluate_thresholds(stats, self.thresholds, now) if n.title not in existing_titles]
        if new:
            self.notifications = (new + self.notifications)[:MAX_NOTIFICATIONS]
            for notification in new:
                logger.warning(f"{notification.title}: {notification.message}")
        return new

    def acknowledge(self, notification_id: str) -> bool:
        for notification in self.notifications:
            if notification.id == notification_id:
                notification.acknowledged = True
                return True
        return False

    def clear(self):
        self.notifications = []

    @property
    def unacknowledged(self) -> List[Notification]:
        return [n for n in self.notifications if not n.acknowledged]
