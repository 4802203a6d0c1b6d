"""
Cleaning Manager Module - Room Cleaning Tracker

This module records room check-ins. A staff member who opens a room's deep
link and confirms the cleaning appends one immutable entry to the cleaning
log; clients and admins read that log back as room history and reports.

Features:
- Staff-only check-in with the role re-read at the time of the call
- Append-only cleaning log keyed by room, staff member and time
- Per-room history and the full log with room, building and staff joined in
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .auth_manager import Role
from .errors import Unauthorized
from .room_manager import parse_room_id

STATUS_CLEANED = 'cleaned'


@dataclass
class CleaningEvent:
    """One cleaning log entry; joined fields are None when the reference is dangling."""
    id: int
    room_id: int
    staff_id: int
    timestamp: datetime
    status: str = STATUS_CLEANED
    room_number: Optional[str] = None
    building_name: Optional[str] = None
    staff_email: Optional[str] = None
    staff_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


def parse_timestamp(value) -> datetime:
    """Parse a stored timestamp into an aware datetime, naive values are UTC."""
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class CleaningManager:
    """
    Check-in recording and cleaning history.
    """

    _LOG_QUERY = """
        SELECT c.id, c.room_id, c.user_id AS staff_id, c.timestamp, c.status,
               r.room_number, l.building_name,
               u.email AS staff_email, u.name AS staff_name
        FROM cleaning_logs c
        LEFT JOIN rooms r ON c.room_id = r.id
        LEFT JOIN locations l ON r.location_id = l.id
        LEFT JOIN users u ON c.user_id = u.id
    """

    def __init__(self, database_manager, auth_manager):
        """
        Initialize the cleaning manager.

        Args:
            database_manager: Database manager instance
            auth_manager: Authentication manager used to re-check the actor's role
        """
        self.db = database_manager
        self.auth = auth_manager
        self.logger = logging.getLogger(__name__)

    def record_cleaning(self, room_id, staff_user_id) -> CleaningEvent:
        """
        Record that a room has been cleaned.

        Args:
            room_id: Room that was cleaned
            staff_user_id: Signed-in user performing the check-in

        Returns:
            CleaningEvent: The stored log entry

        Raises:
            Unauthenticated: The actor no longer resolves to a user
            Unauthorized: The actor is not staff right now
            WriteError: The store rejected the insert
        """
        principal = self.auth.resolve_identity(staff_user_id)
        if principal.role is not Role.STAFF:
            self.logger.warning(
                f"Check-in refused for {principal.email}: role is {principal.role.value}"
            )
            raise Unauthorized('Only staff can mark rooms as cleaned')

        room_id = parse_room_id(room_id)
        timestamp = datetime.now(timezone.utc)
        row = self.db.insert('cleaning_logs', {
            'room_id': room_id,
            'user_id': principal.user_id,
            'status': STATUS_CLEANED,
            'timestamp': timestamp.isoformat(),
        })

        self.logger.info(f"Room {room_id} marked as cleaned by {principal.email}")
        return self.get_event(row['id'])

    def get_event(self, event_id) -> Optional[CleaningEvent]:
        row = self.db.execute_query(self._LOG_QUERY + " WHERE c.id = ?", (event_id,), fetch_all=False)
        return self._to_event(row) if row else None

    def get_room_history(self, room_id) -> List[CleaningEvent]:
        """
        Get the cleaning history of one room, newest first.

        Args:
            room_id: Room id

        Returns:
            List[CleaningEvent]: Log entries for the room
        """
        rows = self.db.execute_query(
            self._LOG_QUERY + " WHERE c.room_id = ? ORDER BY c.timestamp DESC, c.id DESC",
            (parse_room_id(room_id),)
        )
        return [self._to_event(row) for row in rows]

    def get_all_cleaning_logs(self) -> List[CleaningEvent]:
        """Get every cleaning log entry, newest first."""
        rows = self.db.execute_query(self._LOG_QUERY + " ORDER BY c.timestamp DESC, c.id DESC")
        return [self._to_event(row) for row in rows]

    def _to_event(self, row: Dict[str, Any]) -> CleaningEvent:
        row = dict(row)
        row['timestamp'] = parse_timestamp(row['timestamp'])
        return CleaningEvent(**row)
