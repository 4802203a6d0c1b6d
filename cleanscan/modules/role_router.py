"""
Role Router Module - Room Cleaning Tracker

Maps a resolved role to the dashboard view and the actions it may take.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .auth_manager import Principal, Role
from .errors import Unauthorized


@dataclass(frozen=True)
class Action:
    """A dashboard entry point."""
    name: str
    title: str
    description: str
    href: str


@dataclass(frozen=True)
class ViewSpec:
    """Dashboard view a role is routed to."""
    view: str
    role: Role
    actions: Tuple[Action, ...] = field(default_factory=tuple)

    @property
    def access_denied(self) -> bool:
        return self.view == 'access_denied'

    @property
    def action_names(self) -> Tuple[str, ...]:
        return tuple(action.name for action in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'view': self.view,
            'role': self.role.value,
            'actions': [
                {'name': a.name, 'title': a.title, 'description': a.description, 'href': a.href}
                for a in self.actions
            ]
        }


ADMIN_VIEW = ViewSpec('admin_dashboard', Role.ADMIN, (
    Action('manage_users', 'Users', 'Manage users and roles', '/admin/users'),
    Action('manage_rooms', 'Rooms', 'Manage rooms and buildings', '/admin/rooms'),
    Action('view_reports', 'Reports', 'View cleaning logs and reports', '/admin/reports'),
    Action('generate_qr_sheet', 'Generate QR', 'Generate QR codes for rooms', '/admin/qr-codes'),
))

STAFF_VIEW = ViewSpec('staff_dashboard', Role.STAFF, (
    Action('scan_qr', 'Scan QR', 'Scan the QR code on the room to mark it as cleaned', '/scan'),
))

CLIENT_VIEW = ViewSpec('client_dashboard', Role.CLIENT, (
    Action('view_history', 'Cleaning history', 'View your room cleaning history', '/client/history'),
    Action('submit_report', 'Problem report', 'Report a cleaning issue', '/client/report'),
))

ACCESS_DENIED_VIEW = ViewSpec('access_denied', Role.UNKNOWN)

_VIEWS = {
    Role.ADMIN: ADMIN_VIEW,
    Role.STAFF: STAFF_VIEW,
    Role.CLIENT: CLIENT_VIEW,
}


def permitted_view(role) -> ViewSpec:
    """
    Return the dashboard view for a role.

    Accepts a Role or a raw stored value; anything outside admin, staff and
    client gets the access-denied view.
    """
    if not isinstance(role, Role):
        role = Role.from_value(role)
    return _VIEWS.get(role, ACCESS_DENIED_VIEW)


def require_role(principal: Principal, *roles: Role) -> Principal:
    """Raise Unauthorized unless the principal holds one of the given roles."""
    if principal.role not in roles:
        raise Unauthorized(
            f"Role '{principal.role.value}' may not perform this action"
        )
    return principal
