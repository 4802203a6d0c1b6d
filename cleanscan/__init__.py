# Room Cleaning Tracker - App Package
"""
Main application package for the room cleaning tracker.
Staff scan room QR codes to log cleanings, clients follow their room's
history and report problems, admins manage rooms and users and export reports.
"""

__version__ = "1.0.0"
__description__ = "A Flask-based room cleaning tracker driven by per-room QR codes"

from .modules.database_manager import DatabaseManager
from .modules.auth_manager import AuthManager, Principal, Role
from .modules.role_router import permitted_view
from .modules.qr_generator import QRGenerator
from .modules.cleaning_manager import CleaningManager
from .modules.problem_report_manager import ProblemReportManager
from .modules.report_generator import ReportGenerator
from .modules.room_manager import RoomManager
from .modules.user_manager import UserManager

__all__ = [
    'DatabaseManager',
    'AuthManager',
    'Principal',
    'Role',
    'permitted_view',
    'QRGenerator',
    'CleaningManager',
    'ProblemReportManager',
    'ReportGenerator',
    'RoomManager',
    'UserManager'
]
