"""
Employee Break Tracker

Tracks employee shifts, breaks and break coverage, derives compliance
statistics for the management overview, and exports daily timesheets.
"""

__version__ = "1.0.0"
__author__ = "Break Tracker Team"
