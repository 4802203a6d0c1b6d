"""
Report Generator Module - Room Cleaning Tracker

This module turns cleaning logs and problem reports into tables for the admin
reports page and for spreadsheet export. Formatting never fails on missing
joined data: a log whose room, building or staff member no longer resolves
renders those columns blank.

Features:
- Fixed-column tables for cleaning logs and problem reports
- Date and time split in local time
- Time-window filtering (today, week, month, all) over fetched records
- Two-sheet Excel workbook export
- Summary counters for the reports page
"""

import io
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .errors import ValidationError

CLEANING_COLUMNS = ['Date', 'Time', 'Building', 'Room', 'Staff', 'Status']
PROBLEM_COLUMNS = ['Date', 'Time', 'Building', 'Room', 'Client', 'Description', 'Status']

KIND_CLEANING = 'cleaning'
KIND_PROBLEM = 'problem'

TIME_WINDOWS = ('all', 'today', 'week', 'month')

SHEET_CLEANING_LOGS = 'Cleaning Logs'
SHEET_PROBLEM_REPORTS = 'Problem Reports'


def _text(value: Optional[Any]) -> str:
    return '' if value is None else str(value)


def _local(ts: datetime) -> datetime:
    # naive values are taken as local time
    return ts.astimezone()


class ReportGenerator:
    """
    Tabular formatting, filtering and export of cleaning data.
    """

    def __init__(self, date_format: str = '%Y-%m-%d', time_format: str = '%H:%M:%S'):
        """
        Initialize the report generator.

        Args:
            date_format (str): strftime format of the Date column
            time_format (str): strftime format of the Time column
        """
        self.date_format = date_format
        self.time_format = time_format
        self.logger = logging.getLogger(__name__)

    def format_events(self, events: Sequence, kind: str) -> pd.DataFrame:
        """
        Format cleaning events or problem reports as a table.

        Args:
            events: CleaningEvent or ProblemReport records
            kind (str): 'cleaning' or 'problem'

        Returns:
            pd.DataFrame: One row per record with fixed column headers
        """
        if kind == KIND_CLEANING:
            rows = [self._cleaning_row(event) for event in events]
            return pd.DataFrame(rows, columns=CLEANING_COLUMNS)
        if kind == KIND_PROBLEM:
            rows = [self._problem_row(report) for report in events]
            return pd.DataFrame(rows, columns=PROBLEM_COLUMNS)
        raise ValueError(f"Unknown event kind: {kind}")

    def _split_timestamp(self, ts: Optional[datetime]):
        if ts is None:
            return '', ''
        ts = _local(ts)
        return ts.strftime(self.date_format), ts.strftime(self.time_format)

    def _cleaning_row(self, event) -> Dict[str, str]:
        day, time_of_day = self._split_timestamp(getattr(event, 'timestamp', None))
        return {
            'Date': day,
            'Time': time_of_day,
            'Building': _text(getattr(event, 'building_name', None)),
            'Room': _text(getattr(event, 'room_number', None)),
            'Staff': _text(getattr(event, 'staff_email', None)),
            'Status': _text(getattr(event, 'status', None)),
        }

    def _problem_row(self, report) -> Dict[str, str]:
        day, time_of_day = self._split_timestamp(getattr(report, 'timestamp', None))
        return {
            'Date': day,
            'Time': time_of_day,
            'Building': _text(getattr(report, 'building_name', None)),
            'Room': _text(getattr(report, 'room_number', None)),
            'Client': _text(getattr(report, 'client_email', None)),
            'Description': _text(getattr(report, 'description', None)),
            'Status': _text(getattr(report, 'status', None)),
        }

    def window_start(self, window: str, now: datetime = None) -> Optional[datetime]:
        """
        Earliest timestamp included by a time window.

        Args:
            window (str): 'all', 'today', 'week' or 'month'
            now (datetime): Reference time, the current time when omitted

        Returns:
            datetime: Lower bound, None for 'all'
        """
        if window not in TIME_WINDOWS:
            raise ValidationError(f"Unknown filter '{window}', expected one of: {', '.join(TIME_WINDOWS)}")

        now = _local(now) if now is not None else datetime.now().astimezone()
        if window == 'today':
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        if window == 'week':
            return now - timedelta(days=7)
        if window == 'month':
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return None

    def filter_by_window(self, events: Sequence, window: str = 'all', now: datetime = None) -> List:
        """
        Keep the records whose timestamp falls inside a time window.

        Args:
            events: Records with a timestamp attribute
            window (str): 'all', 'today', 'week' or 'month'
            now (datetime): Reference time, the current time when omitted

        Returns:
            list: Matching records in their original order
        """
        start = self.window_start(window, now)
        if start is None:
            return list(events)
        return [e for e in events if e.timestamp is not None and _local(e.timestamp) >= start]

    def get_report_summary(self, cleaning_events: Sequence, problem_reports: Sequence) -> Dict[str, int]:
        """Counters shown at the top of the reports page."""
        return {
            'total_cleanings': len(cleaning_events),
            'problem_reports': len(problem_reports),
            'resolved_reports': sum(1 for r in problem_reports if r.status == 'resolved'),
        }

    def export_workbook(self, cleaning_events: Sequence, problem_reports: Sequence) -> bytes:
        """
        Build the Excel export with one sheet per record kind.

        Args:
            cleaning_events: Cleaning log entries
            problem_reports: Problem reports

        Returns:
            bytes: .xlsx file content
        """
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            self.format_events(cleaning_events, KIND_CLEANING).to_excel(
                writer, sheet_name=SHEET_CLEANING_LOGS, index=False
            )
            self.format_events(problem_reports, KIND_PROBLEM).to_excel(
                writer, sheet_name=SHEET_PROBLEM_REPORTS, index=False
            )

        self.logger.info(
            f"Workbook exported: {len(cleaning_events)} cleaning logs, {len(problem_reports)} problem reports"
        )
        return buffer.getvalue()

    @staticmethod
    def workbook_filename(day: date = None) -> str:
        day = day or date.today()
        return f"cleaning-reports-{day.isoformat()}.xlsx"
