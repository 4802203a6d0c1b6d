"""
Authentication Manager Module - Room Cleaning Tracker

This module handles sign-in and identity resolution. A signed-in session only
carries the user id; the role is read from the users relation every time it
is needed so a role change made by an admin takes effect on the next request.

Features:
- Sign-in by email or username with werkzeug password hashes
- Identity resolution that fails closed
- Closed role set with an explicit unknown role
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash

from .errors import ReadError, Unauthenticated


class Role(str, Enum):
    """Roles known to the application."""
    ADMIN = 'admin'
    STAFF = 'staff'
    CLIENT = 'client'
    UNKNOWN = 'unknown'

    @classmethod
    def from_value(cls, value: Any) -> 'Role':
        """Map a stored role value to a Role, anything unexpected is UNKNOWN."""
        for role in (cls.ADMIN, cls.STAFF, cls.CLIENT):
            if value == role.value:
                return role
        return cls.UNKNOWN


@dataclass(frozen=True)
class Principal:
    """Request-scoped identity of the signed-in user."""
    user_id: int
    email: str
    name: Optional[str]
    role: Role
    assigned_room_id: Optional[int]


class AuthManager:
    """
    Sign-in and identity resolution against the users relation.
    """

    def __init__(self, database_manager):
        """
        Initialize the authentication manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def authenticate_user(self, identifier: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Authenticate a user with email or username and password.

        An identifier containing '@' is matched against the lowercased email,
        anything else against the username.

        Args:
            identifier (str): Email address or username
            password (str): Password

        Returns:
            Dict[str, Any]: User id and email if authenticated, None otherwise
        """
        identifier = identifier.strip() if isinstance(identifier, str) else ''
        if not identifier or not isinstance(password, str) or not password:
            return None

        try:
            if '@' in identifier:
                user = self.db.select('users', {'email': identifier.lower()}, single=True)
            else:
                user = self.db.select('users', {'username': identifier}, single=True)
        except ReadError:
            self.logger.error(f"Authentication lookup failed for {identifier}")
            return None

        if not user:
            self.logger.warning(f"Authentication failed - user not found: {identifier}")
            return None

        if not check_password_hash(user['password_hash'], password):
            self.logger.warning(f"Authentication failed - invalid password: {identifier}")
            return None

        self.logger.info(f"User authenticated successfully: {user['email']}")
        return {'id': user['id'], 'email': user['email']}

    def resolve_identity(self, user_id: Optional[int]) -> Principal:
        """
        Resolve a session user id to a principal with its current role.

        Args:
            user_id (int): User id from the session, or None

        Returns:
            Principal: The signed-in user

        Raises:
            Unauthenticated: No session, unknown user or the lookup failed
        """
        if user_id is None:
            raise Unauthenticated('Please log in to access this page.')

        try:
            user = self.db.select(
                'users', {'id': user_id},
                columns=('id', 'email', 'name', 'role', 'assigned_room_id'),
                single=True
            )
        except ReadError as e:
            self.logger.error(f"Role lookup failed for user {user_id}: {e.message}")
            raise Unauthenticated('Unable to verify your session.') from e

        if not user:
            self.logger.warning(f"Session refers to missing user {user_id}")
            raise Unauthenticated('Please log in to access this page.')

        return Principal(
            user_id=user['id'],
            email=user['email'],
            name=user['name'],
            role=Role.from_value(user['role']),
            assigned_room_id=user['assigned_room_id']
        )
