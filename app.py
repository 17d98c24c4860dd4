"""
Flask Web Application for TicTrack IT Support
Provides API endpoints for login, tickets, the IT dashboard and common issues
"""
import logging

from flask import Flask, Response, request, jsonify
from flask_cors import CORS

from auth_utils import require_auth, generate_jwt_token
from config import FRONTEND_URL, DASHBOARD_POLL_SECONDS, LOG_LEVEL
from db_config import get_db_info
from services.activity_service import ActivityService
from services.notification_service import Notifier
from services.stats_service import StatsService
from tickets.account_db import AccountDatabase
from tickets.auth_resolver import AuthError, LoginResolver
from tickets.common_issues import CommonIssueDatabase
from tickets.ticket_db import SQLiteTicketRepository
from tickets.ticket_service import TicketService

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
)
logger = logging.getLogger('app')

STATUS_BY_ERROR = {
    'validation': 400,
    'not_found': 404
}


def error_response(message, status_code):
    """Uniform error body: {"success": false, "message": ...}"""
    return jsonify({'success': False, 'message': message}), status_code


def result_response(result, success_code=200):
    """Turn a service result dict into a JSON response"""
    if result.get('success'):
        return jsonify(result), success_code
    status_code = STATUS_BY_ERROR.get(result.get('error'), 400)
    return error_response(result.get('message', 'Request failed'), status_code)


def create_app(ticket_repository=None, account_db=None, notifier=None,
               activity_service=None, common_issues=None):
    """
    Build the Flask app.
    Every collaborator can be injected; defaults use the configured SQLite files.
    """
    app = Flask(__name__)

    # Configure CORS for the React frontend
    CORS(app,
         resources={r"/api/*": {"origins": [FRONTEND_URL, "http://localhost:5173"]}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PATCH", "OPTIONS"])

    ticket_repository = ticket_repository or SQLiteTicketRepository()
    account_db = account_db or AccountDatabase()
    notifier = notifier or Notifier()
    activity_service = activity_service or ActivityService()
    common_issues = common_issues or CommonIssueDatabase()

    ticket_service = TicketService(ticket_repository, notifier=notifier, activity=activity_service)
    login_resolver = LoginResolver(account_db)

    logger.info(f"APP_READY | notifications={notifier.enabled}")

    # ============================================
    # Error handlers
    # ============================================

    @app.errorhandler(404)
    def not_found(e):
        return error_response('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response('Method not allowed', 405)

    # ============================================
    # Authentication Endpoints
    # ============================================

    @app.route('/api/auth/login', methods=['POST'])
    def login():
        """Login with email + password; routes the user to the student or IT portal"""
        try:
            data = request.get_json(silent=True) or {}
            email = data.get('email')
            password = data.get('password')

            if not isinstance(email, str) or not isinstance(password, str) \
                    or not email.strip() or not password:
                return error_response('Email and password are required', 400)

            email = email.strip().lower()

            try:
                identity = login_resolver.resolve(email, password)
            except AuthError as e:
                return error_response(e.message, e.status_code)

            token = generate_jwt_token(
                account_id=identity['account_id'],
                email=identity['email'],
                role=identity['role'],
                portal_type=identity['portal_type']
            )

            return jsonify({
                'success': True,
                'token': token,
                'user': {
                    'accountId': identity['account_id'],
                    'email': identity['email'],
                    'fullNameEN': identity['full_name_en'],
                    'fullNameAR': identity['full_name_ar'],
                    'phone': identity['phone'],
                    'role': identity['role'],
                    'portalType': identity['portal_type']
                }
            })

        except Exception:
            logger.exception("LOGIN_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/auth/me', methods=['GET'])
    @require_auth()
    def get_current_user():
        """Identity carried by the bearer token"""
        user_data = request.current_user
        return jsonify({
            'success': True,
            'user': {
                'accountId': user_data.get('account_id'),
                'email': user_data.get('email'),
                'role': user_data.get('role'),
                'portalType': user_data.get('portal')
            }
        })

    # ============================================
    # Ticket Endpoints
    # ============================================

    @app.route('/api/tickets/options', methods=['GET'])
    def get_ticket_options():
        """Option lists for the ticket form and the IT board"""
        return jsonify({'success': True, **ticket_service.get_options()})

    @app.route('/api/tickets', methods=['POST'])
    @require_auth(['student', 'it'])
    def create_ticket():
        """Submit a new support ticket"""
        try:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return error_response('Request body must be a JSON object', 400)

            result = ticket_service.create_ticket(data, actor_email=request.current_user.get('email'))
            return result_response(result, 201)

        except Exception:
            logger.exception("TICKET_CREATE_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets', methods=['GET'])
    @require_auth(['it'])
    def list_tickets():
        """IT board list, filtered by ?category= and ?tab="""
        try:
            category = request.args.get('category', 'all')
            tab = request.args.get('tab', 'all')
            try:
                tickets = ticket_service.list_tickets(category, tab)
            except ValueError as e:
                return error_response(str(e), 400)

            return jsonify({
                'success': True,
                'category': category,
                'tab': tab,
                'count': len(tickets),
                'tickets': tickets
            })

        except Exception:
            logger.exception("TICKET_LIST_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/overdue', methods=['GET'])
    @require_auth(['it'])
    def list_overdue_tickets():
        """Active tickets older than the overdue threshold"""
        try:
            tickets = ticket_service.list_overdue()
            return jsonify({'success': True, 'count': len(tickets), 'tickets': tickets})
        except Exception:
            logger.exception("TICKET_OVERDUE_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/student/<student_id>', methods=['GET'])
    @require_auth(['student', 'it'])
    def get_student_tickets(student_id):
        """Get all tickets for a student"""
        try:
            tickets = ticket_service.get_student_tickets(student_id)
            return jsonify({'success': True, 'count': len(tickets), 'tickets': tickets})
        except Exception:
            logger.exception("STUDENT_TICKETS_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/<ticket_id>', methods=['GET'])
    @require_auth(['student', 'it'])
    def get_ticket(ticket_id):
        try:
            ticket = ticket_service.get_ticket(ticket_id)
            if ticket is None:
                return error_response(f'Ticket {ticket_id} not found', 404)
            return jsonify({'success': True, 'ticket': ticket})
        except Exception:
            logger.exception("TICKET_GET_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/<ticket_id>', methods=['PATCH'])
    @require_auth(['it'])
    def update_ticket(ticket_id):
        """Partial update by IT staff (status, assignment, notes, external repair)"""
        try:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return error_response('Request body must be a JSON object', 400)

            result = ticket_service.update_ticket(
                ticket_id, data, actor_email=request.current_user.get('email')
            )
            return result_response(result)

        except Exception:
            logger.exception("TICKET_UPDATE_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/<ticket_id>/report', methods=['POST'])
    @require_auth(['it'])
    def upload_report(ticket_id):
        """Attach a CSV repair report (multipart field 'file')"""
        try:
            upload = request.files.get('file')
            if upload is None or not upload.filename:
                return error_response('No file provided', 400)

            try:
                content = upload.read().decode('utf-8-sig')
            except UnicodeDecodeError:
                return error_response('Report file must be UTF-8 text', 400)

            result = ticket_service.attach_report(
                ticket_id, upload.filename, content, upload.mimetype,
                actor_email=request.current_user.get('email')
            )
            return result_response(result)

        except Exception:
            logger.exception("REPORT_UPLOAD_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/<ticket_id>/report', methods=['GET'])
    @require_auth(['it'])
    def download_report(ticket_id):
        try:
            result = ticket_service.get_report(ticket_id)
            if not result['success']:
                return result_response(result)

            return Response(
                result['data'],
                mimetype='text/csv',
                headers={'Content-Disposition': f'attachment; filename="{result["name"]}"'}
            )
        except Exception:
            logger.exception("REPORT_DOWNLOAD_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/tickets/<ticket_id>/activity', methods=['GET'])
    @require_auth(['it'])
    def get_ticket_activity(ticket_id):
        try:
            if ticket_repository.get(ticket_id) is None:
                return error_response(f'Ticket {ticket_id} not found', 404)
            limit = request.args.get('limit', 50, type=int)
            activities = activity_service.get_ticket_activity(ticket_id, limit=limit)
            return jsonify({'success': True, 'ticket_id': ticket_id, 'activities': activities})
        except Exception:
            logger.exception("TICKET_ACTIVITY_ERROR")
            return error_response('Internal server error', 500)

    # ============================================
    # Dashboard Endpoints
    # ============================================

    @app.route('/api/dashboard/stats', methods=['GET'])
    @require_auth(['it'])
    def get_dashboard_stats():
        """Live counts for the IT dashboard; clients re-poll every refresh_interval seconds"""
        try:
            category = request.args.get('category', 'all')
            try:
                stats = StatsService.get_dashboard_stats(ticket_repository.list(), category=category)
            except ValueError as e:
                return error_response(str(e), 400)

            return jsonify({
                'success': True,
                'stats': stats,
                'refresh_interval': DASHBOARD_POLL_SECONDS
            })
        except Exception:
            logger.exception("DASHBOARD_STATS_ERROR")
            return error_response('Internal server error', 500)

    # ============================================
    # Common Issues Endpoints
    # ============================================

    @app.route('/api/common-issues', methods=['GET'])
    def list_common_issues():
        """Self-help catalog shown before a student raises a ticket"""
        try:
            category = request.args.get('category', 'all')
            try:
                issues = common_issues.list_issues(category)
            except ValueError as e:
                return error_response(str(e), 400)
            return jsonify({'success': True, 'count': len(issues), 'issues': issues})
        except Exception:
            logger.exception("COMMON_ISSUES_ERROR")
            return error_response('Internal server error', 500)

    @app.route('/api/common-issues', methods=['POST'])
    @require_auth(['it'])
    def add_common_issue():
        try:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return error_response('Request body must be a JSON object', 400)

            result = common_issues.add_issue(
                data.get('issue'), data.get('category'), data.get('fix_steps')
            )
            return result_response(result, 201)
        except Exception:
            logger.exception("COMMON_ISSUE_ADD_ERROR")
            return error_response('Internal server error', 500)

    # ============================================
    # Health
    # ============================================

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({'success': True, 'status': 'ok', 'database': get_db_info()})

    return app


if __name__ == '__main__':
    print("=" * 60)
    print("  TicTrack - IT Support Ticketing")
    print("=" * 60)
    print("\n🌐 Starting server at: http://localhost:5000")
    print("📝 Press Ctrl+C to stop the server\n")
    print("=" * 60)

    app = create_app()
    app.run(debug=False, use_reloader=False, host='0.0.0.0', port=5000)
