"""
Test Suite for Threshold Notifications

Covers alert generation from the daily statistics, duplicate suppression by
title, the notification cap, and threshold persistence in settings.
"""

import pytest
import sys
from datetime import datetime
from pathlib import Path
import tempfile
import os
import json

# Setup import path for src
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from break_tracker.compliance import (
    DetailedStats,
    Notification,
    NotificationCenter,
    NotificationThresholds,
    evaluate_thresholds,
)
from break_tracker.data_manager import DataManager

NOW = datetime(2025, 3, 4, 12, 0, 0)


def breaching_stats():
    return DetailedStats(
        total_employees=10,
        missing_breaks=3,
        overtime_alerts=4,
        break_compliance_rate=70.0,
        coverage_compliance_rate=50.0,
        total_breaks_scheduled=8,
    )


def test_no_alerts_for_empty_day():
    assert evaluate_thresholds(DetailedStats(), NotificationThresholds(), NOW) == []


def test_all_thresholds_breached():
    notifications = evaluate_thresholds(breaching_stats(), NotificationThresholds(), NOW)

    titles = [n.title for n in notifications]
    assert titles == [
        "Break Compliance Below Threshold",
        "Coverage Compliance Below Threshold",
        "Overtime Limit Exceeded",
        "Too Many Missing Breaks",
    ]
    assert [n.type for n in notifications] == ["warning", "warning", "error", "error"]
    assert notifications[0].message == "Break compliance rate is 70.0%, below the 85% threshold."
    assert notifications[2].message == "4 employees are working overtime, exceeding the limit of 3."
    assert all(not n.acknowledged for n in notifications)


def test_limits_are_exclusive():
    stats = DetailedStats(total_employees=5, missing_breaks=2, overtime_alerts=3,
                          break_compliance_rate=85.0, coverage_compliance_rate=90.0,
                          total_breaks_scheduled=4)
    assert evaluate_thresholds(stats, NotificationThresholds(), NOW) == []


def test_coverage_alert_needs_scheduled_breaks():
    stats = DetailedStats(total_employees=2, break_compliance_rate=100.0, coverage_compliance_rate=0.0)
    assert evaluate_thresholds(stats, NotificationThresholds(), NOW) == []


def test_notification_center_suppresses_duplicate_titles():
    center = NotificationCenter()
    added = center.refresh(breaching_stats(), NOW)
    assert len(added) == 4

    again = center.refresh(breaching_stats(), datetime(2025, 3, 4, 12, 5, 0))
    assert again == []
    assert len(center.notifications) == 4


def test_notification_center_acknowledge_and_clear():
    center = NotificationCenter()
    center.refresh(breaching_stats(), NOW)

    first_id = center.notifications[0].id
    assert center.acknowledge(first_id)
    assert not center.acknowledge("missing-id")
    assert len(center.unacknowledged) == 3

    center.clear()
    assert center.notifications == []


def test_notification_center_keeps_latest_ten():
    center = NotificationCenter()
    center.notifications = [
        Notification(id=str(i), type="info", title=f"Old {i}", message="", timestamp=NOW)
        for i in range(9)
    ]
    center.refresh(breaching_stats(), NOW)

    assert len(center.notifications) == 10
    assert center.notifications[0].title == "Break Compliance Below Threshold"
    assert center.notifications[-1].title == "Old 5"


def test_disabled_center_adds_nothing():
    center = NotificationCenter(enabled=False)
    assert center.refresh(breaching_stats(), NOW) == []
    assert center.notifications == []


@pytest.fixture
def data_manager():
    """Clean DataManager for each test - isolated temp file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as temp:
        temp_path = temp.name
        json.dump({}, temp)
    dm = DataManager(temp_path)
    yield dm
    os.unlink(temp_path)
    backup = Path(temp_path).with_suffix(".bak")
    if backup.exists():
        backup.unlink()


def test_thresholds_persist_in_settings(data_manager):
    assert NotificationThresholds.load(data_manager) == NotificationThresholds()

    NotificationThresholds(break_compliance=95, overtime_limit=1).save(data_manager)
    data_manager.save_data()

    reloaded = NotificationThresholds.load(DataManager(data_manager.data_file))
    assert reloaded.break_compliance == 95
    assert reloaded.overtime_limit == 1
    assert reloaded.coverage_compliance == 90
