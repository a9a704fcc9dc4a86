"""
Reporting and Export Module for Break Tracking System

Handles CSV, Excel and PDF export of a day's break timesheet together with
the compliance statistics shown in the management overview.
"""

import csv
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional
import logging

from .break_logic import analyze_entries
from .compliance import (
    DetailedStats,
    NotificationThresholds,
    NotificationCenter,
    calculate_detailed_stats,
    compliance_rating,
)
from .data_manager import DataManager, BreakEntry, Employee
from .time_utils import format_outside_therapy_time, format_shift_hours, format_time_12h, net_worked_hours

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Date",
    "Employee",
    "Department",
    "Shift Start",
    "Shift End",
    "Break 1 Start",
    "Break 1 End",
    "Break 1 Coverage",
    "Break 2 Start",
    "Break 2 End",
    "Break 2 Coverage",
    "Outside Therapy Start",
    "Outside Therapy End",
    "Outside Therapy Reason",
    "Total Hours",
]


def format_entry_date(value: date) -> str:
    """M/D/YYYY without zero padding"""
    return f"{value.month}/{value.day}/{value.year}"


def create_timesheet_dataframe(entries: List[BreakEntry], employees: List[Employee]) -> pd.DataFrame:
    """One row per entry in the timesheet export layout"""
    employees_by_id = {emp.id: emp for emp in employees}

    def name_of(emp_id: Optional[str]) -> str:
        emp = employees_by_id.get(emp_id) if emp_id else None
        return emp.name if emp else ""

    rows = []
    for entry in entries:
        employee = employees_by_id.get(entry.employee_id)
        rows.append({
            "Date": format_entry_date(entry.date),
            "Employee": employee.name if employee else "Unknown",
            "Department": employee.department.value if employee else "Unknown",
            "Shift Start": format_time_12h(entry.shift_start),
            "Shift End": format_time_12h(entry.shift_end),
            "Break 1 Start": format_time_12h(entry.break1_start),
            "Break 1 End": format_time_12h(entry.break1_end),
            "Break 1 Coverage": name_of(entry.coverage_employee_id),
            "Break 2 Start": format_time_12h(entry.break2_start),
            "Break 2 End": format_time_12h(entry.break2_end),
            "Break 2 Coverage": name_of(entry.coverage2_employee_id),
            "Outside Therapy Start": format_time_12h(entry.outside_therapy_start),
            "Outside Therapy End": format_time_12h(entry.outside_therapy_end),
            "Outside Therapy Reason": entry.outside_therapy_reason or "",
            "Total Hours": net_worked_hours(entry),
        })

    return pd.DataFrame(rows, columns=CSV_COLUMNS)


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=30,
            alignment=1  # Center alignment
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceAfter=12
        ))

    def _day_data(self, target_date: date):
        entries = self.data_manager.get_entries_for_date(target_date)
        employees = self.data_manager.get_employees()
        return entries, employees

    def get_day_statistics(self, target_date: date) -> DetailedStats:
        entries, employees = self._day_data(target_date)
        return calculate_detailed_stats(entries, employees, target_date)

    def export_day_csv(self, target_date: date, output_path: str) -> bool:
        """Export the day's timesheet to CSV with every cell quoted"""
        try:
            entries, employees = self._day_data(target_date)
            df = create_timesheet_dataframe(entries, employees)
            df.to_csv(output_path, index=False, quoting=csv.QUOTE_ALL)
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False

    def export_day_excel(self, target_date: date, output_path: str) -> bool:
        """Export timesheet, statistics and roster to an Excel workbook"""
        try:
            entries, employees = self._day_data(target_date)

            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                create_timesheet_dataframe(entries, employees).to_excel(writer, sheet_name='Breaks', index=False)
                self._create_statistics_dataframe(target_date).to_excel(writer, sheet_name='Statistics', index=False)
                self._create_employee_dataframe(employees).to_excel(writer, sheet_name='Employees', index=False)

                self._format_excel_worksheets(writer)

            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _create_statistics_dataframe(self, target_date: date) -> pd.DataFrame:
        stats = self.get_day_statistics(target_date)
        data = [{'Metric': key, 'Value': value} for key, value in stats.to_dict().items()
                if key != 'departmentBreakdown']
        for dept, count in stats.department_breakdown.items():
            data.append({'Metric': f'department:{dept.value}', 'Value': count})
        return pd.DataFrame(data)

    def _create_employee_dataframe(self, employees: List[Employee]) -> pd.DataFrame:
        data = [{'ID': emp.id, 'Name': emp.name, 'Department': emp.department.value} for emp in employees]
        return pd.DataFrame(data, columns=['ID', 'Name', 'Department'])

    def _format_excel_worksheets(self, writer):
        """Header colours and column widths on every sheet"""
        from openpyxl.styles import PatternFill, Font

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for worksheet in writer.sheets.values():
            for cell in worksheet[1]:
                cell.fill = header_fill
                cell.font = header_font

            for column in worksheet.columns:
                column_letter = column[0].column_letter
                max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
                worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)

    def export_day_pdf(self, target_date: date, output_path: str) -> bool:
        """Export the day's summary and timesheet to PDF"""
        try:
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = []
            title_text = f"Employee Break Report - {target_date.strftime('%B')} {target_date.day}, {target_date.year}"
            story.append(Paragraph(title_text, self.styles['CustomTitle']))

            story.append(Paragraph("Compliance Summary", self.styles['CustomHeading']))
            story.append(self._create_summary_table(self.get_day_statistics(target_date)))
            story.append(Spacer(1, 20))

            story.append(Paragraph("Break Timesheet", self.styles['CustomHeading']))
            story.append(self._create_entries_table(target_date))

            doc.build(story)
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_summary_table(self, stats: DetailedStats) -> Table:
        data = [
            ['Metric', 'Value'],
            ['Employees Working', str(stats.total_employees)],
            ['Missing Breaks', str(stats.missing_breaks)],
            ['Coverage Issues', str(stats.coverage_issues)],
            ['Overtime Alerts', str(stats.overtime_alerts)],
            ['Break Compliance',
             f"{stats.break_compliance_rate:.1f}% ({compliance_rating(stats.break_compliance_rate)})"],
            ['Coverage Compliance',
             f"{stats.coverage_compliance_rate:.1f}% ({compliance_rating(stats.coverage_compliance_rate)})"],
            ['Average Shift', format_shift_hours(stats.average_shift_length)],
            ['Longest Shift', format_shift_hours(stats.longest_shift)],
            ['Shortest Shift', format_shift_hours(stats.shortest_shift)],
        ]
        for dept, count in stats.department_breakdown.items():
            data.append([f"{dept.value} Staff", str(count)])

        table = Table(data, colWidths=[3*inch, 2.5*inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ]))
        return table

    def _create_entries_table(self, target_date: date) -> Table:
        entries, employees = self._day_data(target_date)
        data = [['Employee', 'Department', 'Shift', 'Break 1', 'Break 2', 'Outside Therapy',
                 'Break Status', 'Coverage', 'Total']]

        for item in sorted(analyze_entries(entries, employees, target_date), key=lambda a: a.employee.name.lower()):
            entry = item.entry
            break1 = (f"{format_time_12h(entry.break1_start)} - {format_time_12h(entry.break1_end)}"
                      if item.has_break1 else '-')
            break2 = (f"{format_time_12h(entry.break2_start)} - {format_time_12h(entry.break2_end)}"
                      if item.has_break2 else '-')
            data.append([
                item.employee.name,
                item.employee.department.value,
                f"{format_time_12h(entry.shift_start)} - {format_time_12h(entry.shift_end)}",
                break1,
                break2,
                format_outside_therapy_time(entry.outside_therapy_start, entry.outside_therapy_end,
                                            entry.outside_therapy_reason) or '-',
                item.break_status.label,
                item.coverage_status.label,
                net_worked_hours(entry),
            ])

        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BACKGROUND', (0, 1), (-1, -1), colors.beige),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return table

    def create_dashboard_summary(self, target_date: date,
                                 thresholds: Optional[NotificationThresholds] = None) -> str:
        """Create text summary of a day's compliance for console display"""
        stats = self.get_day_statistics(target_date)
        thresholds = thresholds or NotificationThresholds.load(self.data_manager)
        enabled = self.data_manager.get_setting("notificationsEnabled", True)
        center = NotificationCenter(thresholds, enabled=enabled)
        notifications = center.refresh(stats)

        departments = "\n".join(
            f"• {dept.value}: {count}" for dept, count in stats.department_breakdown.items()
        )

        summary = f"""
BREAK SUMMARY - {target_date.isoformat()}

Staffing:
• Employees Working: {stats.total_employees}
{departments}

Breaks:
• With All Required Breaks: {stats.employees_with_full_breaks}
• Partial Breaks: {stats.employees_with_partial_breaks}
• No Breaks: {stats.employees_with_no_breaks}
• Break Compliance: {stats.break_compliance_rate:.1f}% ({compliance_rating(stats.break_compliance_rate)})

Coverage:
• Breaks Scheduled: {stats.total_breaks_scheduled}
• Coverage Assigned: {stats.total_coverage_assigned}
• Coverage Issues: {stats.coverage_issues}
• Coverage Compliance: {stats.coverage_compliance_rate:.1f}% ({compliance_rating(stats.coverage_compliance_rate)})

Shifts:
• Total Hours: {format_shift_hours(stats.total_shift_hours)}
• Average Shift: {format_shift_hours(stats.average_shift_length)}
• Longest Shift: {format_shift_hours(stats.longest_shift)}
• Shortest Shift: {format_shift_hours(stats.shortest_shift)}
• Overtime Alerts: {stats.overtime_alerts}
        """

        if notifications:
            summary += "\n\nALERTS:"
            for notification in notifications:
                summary += f"\n• {notification.title}: {notification.message}"

        return summary.strip()


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.report_generator = ReportGenerator(data_manager)

    def export_day(self, target_date: date, format_type: str, output_path: str) -> bool:
        """Export a day's entries in the specified format"""
        if format_type.lower() == 'pdf':
            return self.report_generator.export_day_pdf(target_date, output_path)
        elif format_type.lower() == 'excel':
            return self.report_generator.export_day_excel(target_date, output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_day_csv(target_date, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def get_default_filename(self, target_date: date, format_type: str) -> str:
        extension = 'xlsx' if format_type.lower() == 'excel' else format_type.lower()
        return f"employee-breaks-{target_date.isoformat()}.{extension}"

    def batch_export(self, target_date: date, output_dir: str,
                     formats: List[str] = None) -> Dict[str, bool]:
        """Export a day in multiple formats"""
        if formats is None:
            formats = ['pdf', 'excel', 'csv']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(target_date, format_type)
            try:
                results[format_type] = self.export_day(target_date, format_type, str(file_path))
            except ValueError as e:
                logger.error(f"Error exporting {format_type}: {e}", exc_info=True)
                results[format_type] = False

        return results
