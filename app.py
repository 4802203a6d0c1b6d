"""
Flask Room Cleaning Tracker - Main Application

This module is the entry point of the room cleaning tracker. It builds the
Flask application, wires the managers to the configured database and defines
the routes for the three roles:

- Staff open a room's deep link (printed as a QR code on the door) and mark
  the room as cleaned
- Clients read the cleaning history of their room and report problems
- Admins manage users and rooms, read and export reports, and print QR sheets

Every protected route resolves the signed-in user's role from the database on
each request; the session only carries the user id.
"""

import io
import logging
from datetime import datetime
from functools import wraps

from flask import (Blueprint, Flask, current_app, jsonify, redirect, request,
                   send_file, session, url_for)

from config import init_config
from cleanscan.modules.auth_manager import AuthManager, Role
from cleanscan.modules.cleaning_manager import CleaningManager
from cleanscan.modules.database_manager import DatabaseManager
from cleanscan.modules.errors import (CleanScanError, NotFound, ReadError,
                                      Unauthenticated, Unauthorized,
                                      ValidationError, WriteError)
from cleanscan.modules.problem_report_manager import ProblemReportManager
from cleanscan.modules.qr_generator import QRGenerator
from cleanscan.modules.report_generator import KIND_CLEANING, ReportGenerator
from cleanscan.modules.role_router import permitted_view, require_role
from cleanscan.modules.room_manager import RoomManager
from cleanscan.modules.user_manager import UserManager

logger = logging.getLogger(__name__)

main = Blueprint('main', __name__)

STATUS_CODES = {
    ValidationError: 400,
    Unauthorized: 403,
    NotFound: 404,
}


def create_app(config_name=None, overrides=None):
    """
    Build the Flask application.

    Args:
        config_name (str): Key of the configuration class, FLASK_ENV when omitted
        overrides (dict): Extra configuration values, applied last

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    init_config(app, config_name, overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    )

    db_manager = DatabaseManager(
        app.config['DATABASE_PATH'],
        seed_default_data=app.config['SEED_DEFAULT_DATA']
    )
    auth_manager = AuthManager(db_manager)

    app.extensions['cleanscan'] = {
        'db': db_manager,
        'auth': auth_manager,
        'rooms': RoomManager(db_manager),
        'users': UserManager(db_manager),
        'cleaning': CleaningManager(db_manager, auth_manager),
        'problems': ProblemReportManager(db_manager),
        'reports': ReportGenerator(
            date_format=app.config['EXPORT_DATE_FORMAT'],
            time_format=app.config['EXPORT_TIME_FORMAT']
        ),
        'qr': QRGenerator(
            width=app.config['QR_CODE_WIDTH'],
            margin=app.config['QR_CODE_MARGIN'],
            fill_color=app.config['QR_FILL_COLOR'],
            back_color=app.config['QR_BACK_COLOR'],
            sheet_columns=app.config['QR_SHEET_COLUMNS'],
            sheet_rows=app.config['QR_SHEET_ROWS']
        ),
    }

    app.register_blueprint(main)
    return app


def _manager(name):
    return current_app.extensions['cleanscan'][name]


def _origin():
    return current_app.config.get('PUBLIC_ORIGIN') or request.host_url.rstrip('/')


def _payload():
    """Request fields from a JSON object or a form, empty for any other body"""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def _text_field(data, *keys):
    """First non-empty string among the given fields, stripped"""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ''


def _failure(error, context):
    """Convert an application error raised inside a route into a response."""
    if isinstance(error, Unauthenticated):
        session.pop('user_id', None)
        return redirect(url_for('main.login'))

    if isinstance(error, (ReadError, WriteError)):
        logger.error(f"{context} failed: {error.message}")
        return jsonify({
            'success': False,
            'message': 'An error occurred. Please try again.',
            'error_type': error.error_type
        }), 500

    status = STATUS_CODES.get(type(error), 400)
    if status == 403:
        logger.warning(f"{context} refused: {error.message}")
    return jsonify({
        'success': False,
        'message': error.message,
        'error_type': error.error_type
    }), status


def login_required(f):
    """Decorator resolving the signed-in user and passing it to the view"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            principal = _manager('auth').resolve_identity(session.get('user_id'))
        except Unauthenticated:
            session.pop('user_id', None)
            return redirect(url_for('main.login'))
        return f(principal, *args, **kwargs)
    return decorated_function


def role_required(*roles):
    """Decorator limiting a view to the given roles, others go back to the dashboard"""
    def decorator(f):
        @wraps(f)
        def checked_function(principal, *args, **kwargs):
            try:
                require_role(principal, *roles)
            except Unauthorized as e:
                logger.warning(f"{principal.email} denied {request.path}: {e.message}")
                return redirect(url_for('main.dashboard'))
            return f(principal, *args, **kwargs)
        return login_required(checked_function)
    return decorator


@main.route('/')
def index():
    """Landing page"""
    if 'user_id' in session:
        return redirect(url_for('main.dashboard'))
    return redirect(url_for('main.login'))


@main.route('/login', methods=['GET', 'POST'])
def login():
    """User login by email or username"""
    if request.method == 'POST':
        data = _payload()
        identifier = _text_field(data, 'identifier', 'email', 'username')
        password = data.get('password')
        if not isinstance(password, str):
            password = ''

        if not identifier or not password:
            return jsonify({
                'success': False,
                'message': 'Please provide both email or username and password.'
            }), 400

        user = _manager('auth').authenticate_user(identifier, password)
        if not user:
            return jsonify({
                'success': False,
                'message': 'Invalid email, username or password.'
            }), 401

        session.clear()
        session.permanent = True
        session['user_id'] = user['id']
        logger.info(f"User {user['email']} logged in successfully")
        return redirect(url_for('main.dashboard'))

    if 'user_id' in session:
        return redirect(url_for('main.dashboard'))
    return jsonify({
        'success': True,
        'message': 'Please log in.',
        'data': {'fields': ['identifier', 'password']}
    })


@main.route('/logout')
def logout():
    """User logout"""
    session.clear()
    return redirect(url_for('main.login'))


@main.route('/dashboard')
@login_required
def dashboard(principal):
    """Role-routed dashboard"""
    view = permitted_view(principal.role)
    data = {
        'user': {'email': principal.email, 'name': principal.name, 'role': principal.role.value},
        'view': view.to_dict()
    }

    if view.access_denied:
        logger.warning(f"Access denied for {principal.email}: no dashboard for this role")
        return jsonify({'success': False, 'message': 'Access denied', 'data': data}), 403

    return jsonify({'success': True, 'data': data})


@main.route('/scan')
@role_required(Role.STAFF)
def scan(principal):
    """Staff scanning instructions"""
    return jsonify({
        'success': True,
        'message': 'Scan the QR code on the room to mark it as cleaned'
    })


@main.route('/room/<room_id>')
@role_required(Role.STAFF)
def room_page(principal, room_id):
    """Room check-in page opened from a scanned QR code"""
    try:
        room = _manager('rooms').get_room(room_id)
    except CleanScanError as e:
        return _failure(e, f"Loading room {room_id}")

    return jsonify({
        'success': True,
        'data': {
            'room': room.to_dict(),
            'staff': principal.email,
            'time': datetime.now().astimezone().isoformat(),
            'action': url_for('main.mark_cleaned', room_id=room.id)
        }
    })


@main.route('/room/<room_id>/clean', methods=['POST'])
@role_required(Role.STAFF)
def mark_cleaned(principal, room_id):
    """Record a cleaning for the room"""
    try:
        room = _manager('rooms').get_room(room_id)
        event = _manager('cleaning').record_cleaning(room.id, principal.user_id)
    except CleanScanError as e:
        return _failure(e, f"Check-in for room {room_id}")

    return jsonify({
        'success': True,
        'message': f"Room {room.room_number} marked as cleaned",
        'data': event.to_dict(),
        'redirect': url_for('main.dashboard')
    }), 201


@main.route('/client/history')
@role_required(Role.CLIENT)
def client_history(principal):
    """Cleaning history of the client's assigned room"""
    data = {'room': None, 'history': []}
    if principal.assigned_room_id is None:
        return jsonify({'success': True, 'message': 'No room is assigned to your account', 'data': data})

    try:
        room = _manager('rooms').get_room(principal.assigned_room_id)
        history = _manager('cleaning').get_room_history(room.id)
    except CleanScanError as e:
        return _failure(e, f"History for {principal.email}")

    data['room'] = room.to_dict()
    data['history'] = [event.to_dict() for event in history]
    return jsonify({'success': True, 'data': data})


@main.route('/client/report', methods=['GET', 'POST'])
@role_required(Role.CLIENT)
def client_report(principal):
    """Problem report form for the client's assigned room"""
    try:
        if principal.assigned_room_id is None:
            raise ValidationError('No room is assigned to your account')
        room = _manager('rooms').get_room(principal.assigned_room_id)

        if request.method == 'GET':
            return jsonify({'success': True, 'data': {'room': room.to_dict()}})

        report = _manager('problems').submit_report(
            room.id, principal.user_id, _payload().get('description', '')
        )
    except CleanScanError as e:
        return _failure(e, f"Problem report by {principal.email}")

    return jsonify({
        'success': True,
        'message': 'Report submitted',
        'data': report.to_dict(),
        'redirect': url_for('main.dashboard')
    }), 201


@main.route('/reports/<report_id>/resolve', methods=['POST'])
@role_required(Role.ADMIN, Role.STAFF)
def resolve_report(principal, report_id):
    """Mark a problem report as resolved"""
    try:
        report = _manager('problems').resolve_report(report_id, principal)
    except CleanScanError as e:
        return _failure(e, f"Resolving report {report_id}")

    return jsonify({'success': True, 'data': report.to_dict()})


@main.route('/admin/reports')
@role_required(Role.ADMIN)
def admin_reports(principal):
    """Cleaning logs and problem reports with a time-window filter"""
    window = request.args.get('filter', 'all')
    reports = _manager('reports')
    try:
        logs = _manager('cleaning').get_all_cleaning_logs()
        problems = _manager('problems').get_all_reports()
        filtered_logs = reports.filter_by_window(logs, window)
    except CleanScanError as e:
        return _failure(e, 'Loading reports')

    return jsonify({
        'success': True,
        'data': {
            'filter': window,
            'summary': reports.get_report_summary(logs, problems),
            'cleaning_logs': reports.format_events(filtered_logs, KIND_CLEANING).to_dict(orient='records'),
            'problem_reports': [report.to_dict() for report in problems]
        }
    })


@main.route('/admin/reports/export')
@role_required(Role.ADMIN)
def export_reports(principal):
    """Download cleaning logs and problem reports as an Excel workbook"""
    reports = _manager('reports')
    try:
        content = reports.export_workbook(
            _manager('cleaning').get_all_cleaning_logs(),
            _manager('problems').get_all_reports()
        )
    except CleanScanError as e:
        return _failure(e, 'Exporting reports')

    return send_file(
        io.BytesIO(content),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=reports.workbook_filename()
    )


@main.route('/admin/qr-codes')
@role_required(Role.ADMIN)
def admin_qr_codes(principal):
    """Room list with QR previews"""
    qr = _manager('qr')
    try:
        rooms = _manager('rooms').get_all_rooms()
    except CleanScanError as e:
        return _failure(e, 'Loading rooms for QR codes')

    origin = _origin()
    preview_count = current_app.config['QR_PREVIEW_COUNT']
    previews = [
        dict(room.to_dict(), qr_code=qr.to_data_url(
            qr.generate_room_qr_code(room.id, origin, width=current_app.config['QR_PREVIEW_WIDTH'])
        ))
        for room in rooms[:preview_count]
    ]

    return jsonify({
        'success': True,
        'data': {
            'room_count': len(rooms),
            'building_count': len({room.location_id for room in rooms}),
            'page_count': qr.expected_page_count(len(rooms)),
            'previews': previews,
            'remaining': max(len(rooms) - preview_count, 0)
        }
    })


@main.route('/admin/qr-codes/sheet')
@role_required(Role.ADMIN)
def qr_sheet(principal):
    """Download the printable QR sheet for all rooms"""
    try:
        rooms = _manager('rooms').get_all_rooms()
    except CleanScanError as e:
        return _failure(e, 'Loading rooms for QR sheet')

    sheet = _manager('qr').create_qr_sheet(rooms, _origin(), output_filename='room-qr-codes.pdf')
    if sheet.page_count == 0:
        return jsonify({'success': False, 'message': 'There are no rooms to print'}), 404

    return send_file(
        io.BytesIO(sheet.content),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=sheet.filename
    )


@main.route('/admin/qr-codes/<room_id>.png')
@role_required(Role.ADMIN)
def room_qr_code(principal, room_id):
    """QR code image for one room"""
    qr = _manager('qr')
    try:
        room = _manager('rooms').get_room(room_id)
    except CleanScanError as e:
        return _failure(e, f"QR code for room {room_id}")

    img = qr.generate_room_qr_code(room.id, _origin())
    return send_file(io.BytesIO(qr.to_png_bytes(img)), mimetype='image/png',
                     download_name=f"room-{room.id}.png")


@main.route('/admin/users', methods=['GET', 'POST'])
@role_required(Role.ADMIN)
def admin_users(principal):
    """List or create user accounts"""
    users = _manager('users')
    try:
        if request.method == 'POST':
            data = _payload()
            user = users.create_user(
                email=data.get('email'),
                password=data.get('password'),
                role=data.get('role', 'client'),
                name=data.get('name'),
                username=data.get('username'),
                assigned_room_id=data.get('assigned_room_id')
            )
            return jsonify({'success': True, 'data': user.to_dict()}), 201

        return jsonify({'success': True, 'data': [user.to_dict() for user in users.get_all_users()]})
    except CleanScanError as e:
        return _failure(e, 'User administration')


@main.route('/admin/users/<int:user_id>', methods=['POST'])
@role_required(Role.ADMIN)
def update_user(principal, user_id):
    """Change the role or room assignment of a user"""
    data = _payload()
    changes = {}
    if 'role' in data:
        changes['role'] = data['role']
    if 'assigned_room_id' in data:
        changes['assigned_room_id'] = data['assigned_room_id']

    try:
        user = _manager('users').update_user(user_id, **changes)
    except CleanScanError as e:
        return _failure(e, f"Updating user {user_id}")

    logger.info(f"{principal.email} updated user {user_id}")
    return jsonify({'success': True, 'data': user.to_dict()})


@main.route('/admin/rooms', methods=['GET', 'POST'])
@role_required(Role.ADMIN)
def admin_rooms(principal):
    """List or create rooms"""
    rooms = _manager('rooms')
    try:
        if request.method == 'POST':
            data = _payload()
            room = rooms.create_room(data.get('room_number'), data.get('location_id'))
            return jsonify({'success': True, 'data': room.to_dict()}), 201

        return jsonify({'success': True, 'data': [room.to_dict() for room in rooms.get_all_rooms()]})
    except CleanScanError as e:
        return _failure(e, 'Room administration')


@main.route('/admin/locations', methods=['GET', 'POST'])
@role_required(Role.ADMIN)
def admin_locations(principal):
    """List or create buildings"""
    rooms = _manager('rooms')
    try:
        if request.method == 'POST':
            location = rooms.create_location(_payload().get('building_name'))
            return jsonify({'success': True, 'data': location.to_dict()}), 201

        return jsonify({'success': True, 'data': [loc.to_dict() for loc in rooms.get_all_locations()]})
    except CleanScanError as e:
        return _failure(e, 'Location administration')


if __name__ == '__main__':
    app = create_app()
    app.run(debug=app.config['DEBUG'], host='0.0.0.0', port=5000)
