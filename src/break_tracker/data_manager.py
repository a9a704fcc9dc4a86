"""
Data Manager for Break Tracking System

Handles all file I/O operations, JSON persistence, backup/restore and CRUD
operations for employees, break entries and application settings.
"""

import json
import logging
from datetime import datetime, date
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from .time_utils import TimeParseError, parse_time_to_minutes

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
BACKUP_VERSION = "1.0"
NO_COVERAGE = "none"


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class BackupFormatError(DataValidationError):
    """Raised when backup data is malformed or has an unsupported version"""
    pass


class Department(str, Enum):
    RBT = "RBT"
    OPERATIONS = "Operations"
    BCBA = "BCBA"
    FLOATER = "Floater"


def normalize_coverage(value: Optional[str]) -> Optional[str]:
    """Collapse the "none" sentinel and empty strings to None"""
    if not value or value == NO_COVERAGE:
        return None
    return value


def parse_entry_date(value: Any) -> date:
    """Accept a date, an ISO date or an ISO datetime string; keep the calendar day"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise DataValidationError(f"Invalid entry date '{value}': {e}")


@dataclass
class Employee:
    """Employee data structure with department"""
    id: str
    name: str
    department: Department

    def __post_init__(self):
        self.department = Department(self.department)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        return cls(
            id=str(data["id"]),
            name=data["name"],
            department=Department(data.get("department", Department.RBT.value))
        )


# dataclass field name -> serialized key for the optional time fields
_OPTIONAL_ENTRY_FIELDS = {
    "break1_start": "break1Start",
    "break1_end": "break1End",
    "break2_start": "break2Start",
    "break2_end": "break2End",
    "coverage_employee_id": "coverageEmployeeId",
    "coverage2_employee_id": "coverage2EmployeeId",
    "outside_therapy_start": "outsideTherapyStart",
    "outside_therapy_end": "outsideTherapyEnd",
    "outside_therapy_reason": "outsideTherapyReason",
}

_TIME_FIELDS = (
    "shift_start", "shift_end",
    "break1_start", "break1_end",
    "break2_start", "break2_end",
    "outside_therapy_start", "outside_therapy_end",
)


@dataclass
class BreakEntry:
    """One employee's shift on one day with up to two breaks"""
    id: str
    employee_id: str
    date: date
    shift_start: str
    shift_end: str
    break1_start: Optional[str] = None
    break1_end: Optional[str] = None
    break2_start: Optional[str] = None
    break2_end: Optional[str] = None
    coverage_employee_id: Optional[str] = None
    coverage2_employee_id: Optional[str] = None
    outside_therapy_start: Optional[str] = None
    outside_therapy_end: Optional[str] = None
    outside_therapy_reason: Optional[str] = None

    def __post_init__(self):
        self.date = parse_entry_date(self.date)
        self.coverage_employee_id = normalize_coverage(self.coverage_employee_id)
        self.coverage2_employee_id = normalize_coverage(self.coverage2_employee_id)
        self.validate_times()

    def validate_times(self):
        """Raise DataValidationError if any filled-in time is not a valid HH:MM"""
        for attr in _TIME_FIELDS:
            try:
                parse_time_to_minutes(getattr(self, attr))
            except TimeParseError as e:
                raise DataValidationError(f"Break entry {self.id}: {attr} {e}")

    @property
    def has_break1(self) -> bool:
        return bool(self.break1_start and self.break1_end)

    @property
    def has_break2(self) -> bool:
        return bool(self.break2_start and self.break2_end)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "employeeId": self.employee_id,
            "date": self.date.isoformat(),
            "shiftStart": self.shift_start,
            "shiftEnd": self.shift_end,
        }
        for attr, key in _OPTIONAL_ENTRY_FIELDS.items():
            value = getattr(self, attr)
            if value:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BreakEntry':
        optional = {attr: data.get(key) or None for attr, key in _OPTIONAL_ENTRY_FIELDS.items()}
        return cls(
            id=str(data["id"]),
            employee_id=str(data["employeeId"]),
            date=parse_entry_date(data["date"]),
            shift_start=data.get("shiftStart", ""),
            shift_end=data.get("shiftEnd", ""),
            **optional
        )


@dataclass
class BackupData:
    """Portable snapshot of the roster and all break entries"""
    version: str
    timestamp: str
    employees: List[Employee] = field(default_factory=list)
    break_entries: List[BreakEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        departments = list(dict.fromkeys(emp.department.value for emp in self.employees))
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "employees": [emp.to_dict() for emp in self.employees],
            "breakEntries": [entry.to_dict() for entry in self.break_entries],
            "metadata": {
                "totalEmployees": len(self.employees),
                "totalBreakEntries": len(self.break_entries),
                "departments": departments
            }
        }


def validate_backup_data(data: Any) -> BackupData:
    """Check the structure and version of a parsed backup and build BackupData"""
    if not isinstance(data, dict):
        raise BackupFormatError("Invalid backup data format: expected a JSON object")
    if not data.get("version") or not data.get("timestamp"):
        raise BackupFormatError("Invalid backup data format: missing version or timestamp")
    if not isinstance(data.get("employees"), list) or not isinstance(data.get("breakEntries"), list):
        raise BackupFormatError("Invalid backup data format: employees and breakEntries must be lists")
    if not isinstance(data.get("metadata"), dict):
        raise BackupFormatError("Invalid backup data format: missing metadata")

    for emp in data["employees"]:
        if not isinstance(emp, dict) or not emp.get("id") or not emp.get("name") or not emp.get("department"):
            raise BackupFormatError(f"Invalid employee record in backup: {emp}")

    for entry in data["breakEntries"]:
        required = ("id", "employeeId", "date", "shiftStart", "shiftEnd")
        if not isinstance(entry, dict) or not all(entry.get(key) for key in required):
            raise BackupFormatError(f"Invalid break entry record in backup: {entry}")

    if data["version"] != BACKUP_VERSION:
        raise BackupFormatError(
            f"Unsupported backup version: {data['version']}. Expected version {BACKUP_VERSION}."
        )

    try:
        employees = [Employee.from_dict(emp) for emp in data["employees"]]
        entries = [BreakEntry.from_dict(entry) for entry in data["breakEntries"]]
    except (ValueError, KeyError, DataValidationError) as e:
        raise BackupFormatError(f"Invalid backup data format: {e}")

    return BackupData(
        version=data["version"],
        timestamp=data["timestamp"],
        employees=employees,
        break_entries=entries
    )


class DataManager:
    """Manages all data persistence and CRUD operations"""

    def __init__(self, data_file: str = "data/break_data.json"):
        if data_file == "data/break_data.json":
            # Use path relative to the package directory
            data_file = Path(__file__).parent.parent / "data" / "break_data.json"
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')

        if self.data_file.exists():
            try:
                with open(self.data_file, 'r', encoding='utf-8') as f:
                    return self._validate_and_migrate_data(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)

        if backup_file.exists():
            logger.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)

        logger.info("No data file found, creating default data")
        return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            logger.info(f"Attempting recovery from backup file {backup_file}")
            with open(backup_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            # Restore backup to main file
            backup_file.replace(self.data_file)
            logger.info("Successfully recovered data from backup")
            return self._validate_and_migrate_data(data)
        except (json.JSONDecodeError, IOError) as backup_e:
            logger.error(f"Backup file also corrupted: {backup_e}")
            logger.info("Creating default data due to corrupted files")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        default_data = self._create_default_data()

        # Merge with defaults to ensure all keys exist
        for key in default_data:
            if key not in data:
                data[key] = default_data[key]
        for key, value in default_data["settings"].items():
            data["settings"].setdefault(key, value)

        # Older files stored the full ISO timestamp and the "none" coverage sentinel
        entries = []
        for entry_data in data.get("breakEntries", []):
            try:
                entries.append(BreakEntry.from_dict(entry_data).to_dict())
            except (KeyError, ValueError, DataValidationError) as e:
                logger.warning(f"Dropping unreadable break entry {entry_data.get('id')}: {e}")
        data["breakEntries"] = entries

        for emp in data.get("employees", []):
            if "department" not in emp:
                emp["department"] = Department.RBT.value

        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure"""
        return {
            "settings": {
                "appVersion": APP_VERSION,
                "lastDataUpdate": None,
                "notificationsEnabled": True,
                "dataFile": str(self.data_file)
            },
            "employees": [],
            "breakEntries": [],
            "shareLinks": []
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            with open(self.data_file, 'r', encoding='utf-8') as f:
                saved_data = json.load(f)

            required_keys = ["settings", "employees", "breakEntries"]
            for key in required_keys:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)

            # Create backup of existing file if it exists
            if self.data_file.exists():
                self.data_file.replace(backup_file)

            # Write to temporary file first (atomic operation)
            temp_file = self.data_file.with_suffix('.tmp')

            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)

            temp_file.replace(self.data_file)

            self._validate_saved_data()

            return True

        except DataValidationError as e:
            logger.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                try:
                    backup_file.replace(self.data_file)
                except OSError as restore_e:
                    logger.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logger.error(f"I/O error during save operation: {e}", exc_info=True)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        finally:
            # Clean up temp file if it still exists
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    def _touch(self):
        self.data["settings"]["lastDataUpdate"] = datetime.now().isoformat()

    @staticmethod
    def _next_id(records: List[Dict[str, Any]]) -> str:
        numeric_ids = [int(rec["id"]) for rec in records if str(rec.get("id", "")).isdigit()]
        return str(max(numeric_ids, default=0) + 1)

    # Employee Management
    def get_employees(self, department: Optional[Department] = None) -> List[Employee]:
        """Get list of employees, optionally restricted to one department"""
        employees = []
        for emp_data in self.data.get("employees", []):
            emp = Employee.from_dict(emp_data)
            if department is None or emp.department == department:
                employees.append(emp)
        return employees

    def get_employee_by_id(self, emp_id: str) -> Optional[Employee]:
        """Get employee by ID"""
        for emp_data in self.data.get("employees", []):
            if emp_data["id"] == emp_id:
                return Employee.from_dict(emp_data)
        return None

    def get_employee_by_name(self, name: str) -> Optional[Employee]:
        """Get employee by name"""
        for emp_data in self.data.get("employees", []):
            if emp_data["name"] == name:
                return Employee.from_dict(emp_data)
        return None

    def add_employee(self, name: str, department: Department = Department.RBT) -> Employee:
        """Add new employee"""
        employees = self.data.setdefault("employees", [])
        employee = Employee(id=self._next_id(employees), name=name, department=department)
        employees.append(employee.to_dict())
        self._touch()
        logger.info(f"Added employee {employee.name} ({employee.department.value})")
        return employee

    def update_employee(self, emp_id: str, name: str = None, department: Department = None) -> bool:
        """Update employee information"""
        for emp_data in self.data.get("employees", []):
            if emp_data["id"] == emp_id:
                if name is not None:
                    emp_data["name"] = name
                if department is not None:
                    emp_data["department"] = Department(department).value
                self._touch()
                return True
        return False

    def delete_employee(self, emp_id: str) -> bool:
        """Delete employee and the break entries that reference them"""
        employees = self.data.get("employees", [])
        remaining = [emp for emp in employees if emp["id"] != emp_id]
        if len(remaining) == len(employees):
            return False

        self.data["employees"] = remaining

        entries = self.data.get("breakEntries", [])
        self.data["breakEntries"] = [
            entry for entry in entries
            if entry["employeeId"] != emp_id and entry.get("coverageEmployeeId") != emp_id
        ]
        removed = len(entries) - len(self.data["breakEntries"])
        self._touch()
        logger.info(f"Deleted employee {emp_id} and {removed} related break entries")
        return True

    # Break Entry Management
    def get_break_entries(self) -> List[BreakEntry]:
        return [BreakEntry.from_dict(entry) for entry in self.data.get("breakEntries", [])]

    def get_break_entry(self, entry_id: str) -> Optional[BreakEntry]:
        for entry_data in self.data.get("breakEntries", []):
            if entry_data["id"] == entry_id:
                return BreakEntry.from_dict(entry_data)
        return None

    def get_entries_for_date(self, target_date: date) -> List[BreakEntry]:
        """Get all break entries recorded for a calendar day"""
        return [entry for entry in self.get_break_entries() if entry.date == target_date]

    def get_entry_for_employee(self, emp_id: str, target_date: date) -> Optional[BreakEntry]:
        for entry in self.get_entries_for_date(target_date):
            if entry.employee_id == emp_id:
                return entry
        return None

    def get_working_employees(self, target_date: date) -> List[Employee]:
        """Employees with an entry on the given day, sorted by name"""
        working_ids = {entry.employee_id for entry in self.get_entries_for_date(target_date)}
        return sorted(
            (emp for emp in self.get_employees() if emp.id in working_ids),
            key=lambda emp: emp.name.lower()
        )

    def add_break_entry(self, entry: BreakEntry) -> BreakEntry:
        """Store a new entry; the stored copy receives a fresh ID"""
        entry.validate_times()
        entries = self.data.setdefault("breakEntries", [])
        stored = replace(entry, id=self._next_id(entries))
        entries.append(stored.to_dict())
        self._touch()
        return stored

    def update_break_entry(self, entry: BreakEntry) -> bool:
        entry.validate_times()
        entries = self.data.get("breakEntries", [])
        for i, entry_data in enumerate(entries):
            if entry_data["id"] == entry.id:
                entries[i] = entry.to_dict()
                self._touch()
                return True
        return False

    def delete_break_entry(self, entry_id: str) -> bool:
        entries = self.data.get("breakEntries", [])
        remaining = [entry for entry in entries if entry["id"] != entry_id]
        if len(remaining) == len(entries):
            return False
        self.data["breakEntries"] = remaining
        self._touch()
        return True

    # Backup and Restore
    def create_backup(self) -> BackupData:
        return BackupData(
            version=BACKUP_VERSION,
            timestamp=datetime.now().isoformat(),
            employees=self.get_employees(),
            break_entries=self.get_break_entries()
        )

    def export_backup(self, output_path: str) -> bool:
        """Write a JSON backup of the roster and all entries"""
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(self.create_backup().to_dict(), f, indent=2, ensure_ascii=False)
            return True
        except (IOError, OSError) as e:
            logger.error(f"Error writing backup to {output_path}: {e}", exc_info=True)
            return False

    def restore_backup(self, data: Dict[str, Any]) -> BackupData:
        """Replace the roster and entries with a validated backup"""
        backup = validate_backup_data(data)
        self.data["employees"] = [emp.to_dict() for emp in backup.employees]
        self.data["breakEntries"] = [entry.to_dict() for entry in backup.break_entries]
        self._touch()
        logger.info(
            f"Restored {len(backup.employees)} employees and {len(backup.break_entries)} break entries"
        )
        return backup

    def import_backup(self, input_path: str) -> BackupData:
        """Read a backup file and restore it"""
        try:
            with open(input_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise BackupFormatError(f"Backup file is not valid JSON: {e}")
        except (IOError, OSError) as e:
            raise DataFileNotFoundError(f"Cannot read backup file {input_path}: {e}")
        return self.restore_backup(data)

    def clear_all_data(self):
        """Remove every employee and break entry"""
        self.data["employees"] = []
        self.data["breakEntries"] = []
        self._touch()

    def get_data_summary(self) -> Dict[str, Any]:
        employees = self.get_employees()
        return {
            "employees": len(employees),
            "breakEntries": len(self.data.get("breakEntries", [])),
            "departments": list(dict.fromkeys(emp.department.value for emp in employees)),
            "lastModified": self.get_setting("lastDataUpdate") or "Unknown"
        }

    # Share Link Storage
    def get_share_links(self) -> List[Dict[str, Any]]:
        return list(self.data.get("shareLinks", []))

    def save_share_link(self, link_data: Dict[str, Any]):
        """Insert or replace a share link record by ID"""
        links = self.data.setdefault("shareLinks", [])
        for i, existing in enumerate(links):
            if existing["id"] == link_data["id"]:
                links[i] = link_data
                return
        links.append(link_data)

    # Settings Management
    def get_setting(self, key: str, default=None):
        """Get application setting"""
        return self.data.get("settings", {}).get(key, default)

    def set_setting(self, key: str, value):
        """Set application setting"""
        self.data.setdefault("settings", {})[key] = value
