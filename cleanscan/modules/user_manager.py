"""
User Manager Module - Room Cleaning Tracker

This module handles the admin side of user management: listing accounts,
creating them and changing the role and room assignment of an account.
Accounts are never deleted here.

Features:
- User listing with the assigned room joined in
- Account creation with werkzeug password hashing
- Role changes restricted to admin, staff and client
- Room assignment for clients, checked against existing rooms
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from werkzeug.security import generate_password_hash

from .auth_manager import Role
from .errors import NotFound, ValidationError

ASSIGNABLE_ROLES = (Role.ADMIN.value, Role.STAFF.value, Role.CLIENT.value)

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_UNSET = object()


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ''


@dataclass
class UserAccount:
    """User as shown on the admin users page."""
    id: int
    email: str
    username: Optional[str]
    name: Optional[str]
    role: str
    assigned_room_id: Optional[int]
    room_number: Optional[str] = None
    building_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class UserManager:
    """
    Admin operations on user accounts.
    """

    _USER_QUERY = """
        SELECT u.id, u.email, u.username, u.name, u.role, u.assigned_room_id,
               r.room_number, l.building_name
        FROM users u
        LEFT JOIN rooms r ON u.assigned_room_id = r.id
        LEFT JOIN locations l ON r.location_id = l.id
    """

    def __init__(self, database_manager):
        """
        Initialize the user manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def get_all_users(self) -> List[UserAccount]:
        rows = self.db.execute_query(self._USER_QUERY + " ORDER BY u.email ASC")
        return [UserAccount(**row) for row in rows]

    def get_user(self, user_id) -> UserAccount:
        row = self.db.execute_query(
            self._USER_QUERY + " WHERE u.id = ?", (user_id,), fetch_all=False
        )
        if not row:
            raise NotFound(f"User {user_id} not found")
        return UserAccount(**row)

    def create_user(self, email: str, password: str, role: str = 'client',
                    name: str = None, username: str = None,
                    assigned_room_id=None) -> UserAccount:
        """
        Create a new user account.

        Args:
            email (str): Email address, used to sign in
            password (str): Password
            role (str): admin, staff or client
            name (str): Display name
            username (str): Optional username, also accepted at sign-in
            assigned_room_id: Room of a client account

        Returns:
            UserAccount: The new account
        """
        email = _clean(email).lower()
        if not _EMAIL_PATTERN.match(email):
            raise ValidationError('A valid email address is required')
        if not isinstance(password, str) or not password:
            raise ValidationError('Password is required')
        username = _clean(username) or None
        if username and '@' in username:
            raise ValidationError('Username may not contain @')

        role = self._validate_role(role)
        assigned_room_id = self._validate_assignment(role, assigned_room_id)

        row = self.db.insert('users', {
            'email': email,
            'username': username,
            'name': _clean(name) or None,
            'password_hash': generate_password_hash(password),
            'role': role,
            'assigned_room_id': assigned_room_id,
        })
        self.logger.info(f"User created: {email} as {role} (ID: {row['id']})")
        return self.get_user(row['id'])

    def update_user(self, user_id, role: str = None, assigned_room_id=_UNSET) -> UserAccount:
        """
        Change the role and/or room assignment of an account.

        Moving an account off the client role clears its room assignment.

        Args:
            user_id: Account id
            role (str): New role, unchanged when None
            assigned_room_id: New room id, None to clear, unchanged when omitted

        Returns:
            UserAccount: The updated account
        """
        current = self.get_user(user_id)

        new_role = self._validate_role(role) if role is not None else current.role
        if assigned_room_id is _UNSET:
            assigned_room_id = current.assigned_room_id if new_role == Role.CLIENT.value else None
        assigned_room_id = self._validate_assignment(new_role, assigned_room_id)

        self.db.update(
            'users',
            {'role': new_role, 'assigned_room_id': assigned_room_id},
            {'id': current.id}
        )
        self.logger.info(
            f"User {current.email} updated: role={new_role}, assigned_room_id={assigned_room_id}"
        )
        return self.get_user(current.id)

    def _validate_role(self, role: str) -> str:
        role = _clean(role).lower()
        if role not in ASSIGNABLE_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ASSIGNABLE_ROLES)}")
        return role

    def _validate_assignment(self, role: str, assigned_room_id) -> Optional[int]:
        if assigned_room_id in (None, ''):
            return None
        if role != Role.CLIENT.value:
            raise ValidationError('Only client accounts can be assigned to a room')
        try:
            assigned_room_id = int(assigned_room_id)
        except (TypeError, ValueError):
            raise ValidationError('A valid room is required') from None
        if not self.db.select('rooms', {'id': assigned_room_id}, columns=('id',), single=True):
            raise NotFound(f"Room {assigned_room_id} not found")
        return assigned_room_id
