"""
Problem Report Manager Module - Room Cleaning Tracker

Clients file free-text problem reports about their room; admins and staff
mark them resolved.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .auth_manager import Principal, Role
from .cleaning_manager import parse_timestamp
from .errors import NotFound, Unauthorized, ValidationError
from .room_manager import parse_room_id

STATUS_OPEN = 'open'
STATUS_RESOLVED = 'resolved'


@dataclass
class ProblemReport:
    """A client problem report; joined fields are None when the reference is dangling."""
    id: int
    room_id: int
    client_id: int
    description: str
    status: str
    timestamp: datetime
    room_number: Optional[str] = None
    building_name: Optional[str] = None
    client_email: Optional[str] = None
    client_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


class ProblemReportManager:
    """
    Problem report submission and resolution.
    """

    _REPORT_QUERY = """
        SELECT p.id, p.room_id, p.client_id, p.description, p.status, p.timestamp,
               r.room_number, l.building_name,
               u.email AS client_email, u.name AS client_name
        FROM problem_reports p
        LEFT JOIN rooms r ON p.room_id = r.id
        LEFT JOIN locations l ON r.location_id = l.id
        LEFT JOIN users u ON p.client_id = u.id
    """

    def __init__(self, database_manager):
        """
        Initialize the problem report manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def submit_report(self, room_id, client_user_id, description: str) -> ProblemReport:
        """
        File a problem report for a room.

        The room is expected to be the client's assigned room; the client
        views pass the stored assignment and this method does not check it
        again.

        Args:
            room_id: Room the report is about
            client_user_id: Reporting client
            description (str): Free-text description of the problem

        Returns:
            ProblemReport: The stored report, status open

        Raises:
            ValidationError: Description is empty after trimming
            WriteError: The store rejected the insert
        """
        description = description.strip() if isinstance(description, str) else ''
        if not description:
            raise ValidationError('Please describe the problem')

        row = self.db.insert('problem_reports', {
            'room_id': parse_room_id(room_id),
            'client_id': client_user_id,
            'description': description,
            'status': STATUS_OPEN,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        })

        self.logger.info(f"Problem report {row['id']} filed for room {room_id} by user {client_user_id}")
        return self.get_report(row['id'])

    def resolve_report(self, report_id, principal: Principal) -> ProblemReport:
        """
        Mark a report as resolved.

        Args:
            report_id: Report id
            principal (Principal): Admin or staff member resolving it

        Returns:
            ProblemReport: The updated report
        """
        if principal.role not in (Role.ADMIN, Role.STAFF):
            raise Unauthorized('Only admins and staff can resolve problem reports')

        report = self.get_report(report_id)
        if report.status == STATUS_RESOLVED:
            return report

        self.db.update('problem_reports', {
            'status': STATUS_RESOLVED,
            'resolved_at': datetime.now(timezone.utc).isoformat(),
            'resolved_by': principal.user_id,
        }, {'id': report.id})

        self.logger.info(f"Problem report {report.id} resolved by {principal.email}")
        return self.get_report(report.id)

    def get_report(self, report_id) -> ProblemReport:
        try:
            report_id = int(report_id)
        except (TypeError, ValueError):
            raise NotFound(f"Problem report {report_id} not found") from None
        row = self.db.execute_query(self._REPORT_QUERY + " WHERE p.id = ?", (report_id,), fetch_all=False)
        if not row:
            raise NotFound(f"Problem report {report_id} not found")
        return self._to_report(row)

    def get_all_reports(self) -> List[ProblemReport]:
        """Get every problem report, newest first."""
        rows = self.db.execute_query(self._REPORT_QUERY + " ORDER BY p.timestamp DESC, p.id DESC")
        return [self._to_report(row) for row in rows]

    def _to_report(self, row: Dict[str, Any]) -> ProblemReport:
        row = dict(row)
        row['timestamp'] = parse_timestamp(row['timestamp'])
        return ProblemReport(**row)
