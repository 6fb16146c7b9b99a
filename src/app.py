from flask import Flask, request, jsonify, current_app
from flask_migrate import Migrate
import logging
from logging.config import dictConfig
from datetime import datetime
from typing import Optional
import pytz
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

from .config import Settings
from .exceptions import (
    RentalError, BookingNotFound, CompanyNotFound, NotificationNotFound,
    DuplicateCompany, InvalidStatusTransition, TranslationError,
)
from .models import db, Booking, BOOKING_CATEGORIES, PAYMENT_STATUSES
from .rate_limiter import limiter, APIRateLimiter
from .features.sms.code import SMSService
from .features.phone_directory.code import PhoneDirectory
from .features.notification_system.code import BookingNotifier, NotificationRepository
from .features.companies.code import SqlCompanyRepository
from .features.table_controller.code import (
    SimpleTable, SortConfig, ASCENDING, DESCENDING, configure_collation,
)
from .features.date_utils.code import to_datetime
from .features.translation.code import Translator

logger = logging.getLogger(__name__)

BOOKING_SEARCH_KEYS = ['id', 'guest_name', 'company_name', 'items']


def configure_logging(level: str = 'INFO') -> None:
    dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
            }
        },
        'handlers': {
            'wsgi': {
                'class': 'logging.StreamHandler',
                'stream': 'ext://flask.logging.wsgi_errors_stream',
                'formatter': 'default'
            }
        },
        'root': {
            'level': level,
            'handlers': ['wsgi']
        }
    })


def create_app(settings: Optional[Settings] = None, sms_service: Optional[SMSService] = None,
               translator: Optional[Translator] = None, testing: bool = False) -> Flask:
    """Build the Flask application and its services."""
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    configure_collation(settings.collation_locale)

    app = Flask(__name__)
    app.config['TESTING'] = testing
    app.config['SQLALCHEMY_DATABASE_URI'] = settings.database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['RATELIMIT_ENABLED'] = not testing
    app.config['RATELIMIT_STORAGE_URI'] = settings.ratelimit_storage_uri

    if settings.database_url.startswith('sqlite') and ':memory:' in settings.database_url:
        # One shared connection so worker threads see the same in-memory database
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'poolclass': StaticPool,
            'connect_args': {'check_same_thread': False},
        }

    db.init_app(app)
    Migrate(app, db)
    limiter.init_app(app)

    api_limiter = APIRateLimiter(
        openai_requests_per_min=settings.openai_requests_per_min,
        openai_tokens_per_min=settings.openai_tokens_per_min,
        sms_messages_per_day=settings.sms_messages_per_day
    )
    if sms_service is None:
        sms_service = SMSService.from_settings(settings, rate_limiter=api_limiter)
        if not sms_service.enabled:
            app.logger.warning("SMS credentials missing, SMS notifications are disabled")

    app.extensions['rental'] = {
        'settings': settings,
        'sms_service': sms_service,
        'translator': translator or Translator(settings.openai_api_key, rate_limiter=api_limiter),
    }

    register_error_handlers(app)
    register_routes(app)
    return app


def _services():
    return current_app.extensions['rental']


def get_notifier() -> BookingNotifier:
    services = _services()
    return BookingNotifier(
        directory=PhoneDirectory(db.session),
        sms_service=services['sms_service'],
        notifications=NotificationRepository(db.session),
        base_url=services['settings'].app_base_url
    )


def _get_booking(booking_id: str) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)
    return booking


def _parse_booking_payload(data: dict) -> Booking:
    """Validate a booking submission; raises ValueError with a readable message."""
    category = data.get('booking_category')
    if category not in BOOKING_CATEGORIES:
        raise ValueError(f"booking_category must be one of {', '.join(BOOKING_CATEGORIES)}")

    items = data.get('items') or []
    if not isinstance(items, list) or not items:
        raise ValueError("At least one item is required")
    for item in items:
        if not isinstance(item, dict) or not item.get('name'):
            raise ValueError("Every item needs a name")

    start = to_datetime(data.get('start_date'))
    end = to_datetime(data.get('end_date'))
    if start is None or end is None:
        raise ValueError("start_date and end_date must be valid dates")
    if end.date() < start.date():
        raise ValueError("end_date cannot be before start_date")

    try:
        total_cost = float(data.get('total_cost', 0))
    except (TypeError, ValueError):
        raise ValueError("total_cost must be a number")
    if total_cost < 0:
        raise ValueError("total_cost cannot be negative")

    if not (data.get('guest_name') or data.get('company_name')):
        raise ValueError("guest_name or company_name is required")

    return Booking(
        booking_category=category,
        guest_name=data.get('guest_name'),
        company_name=data.get('company_name'),
        company_id=data.get('company_id'),
        phone=data.get('phone'),
        items=[
            {'id': item.get('id'), 'name': item['name'], 'item_type': item.get('item_type')}
            for item in items
        ],
        start_date=start.date(),
        end_date=end.date(),
        total_cost=total_cost,
        notes=data.get('notes'),
    )


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(429)
    def ratelimit_handler(e):
        """Handle rate limit exceeded errors."""
        app.logger.warning(f"Rate limit exceeded: {str(e)}")
        return jsonify({
            'error': 'Rate limit exceeded',
            'message': str(e),
            'retry_after': e.description
        }), 429

    @app.errorhandler(RentalError)
    def rental_error_handler(e):
        if isinstance(e, (BookingNotFound, CompanyNotFound, NotificationNotFound)):
            status = 404
        elif isinstance(e, (DuplicateCompany, InvalidStatusTransition)):
            status = 409
        else:
            status = 400
        return jsonify({'error': str(e)}), status


def register_routes(app: Flask) -> None:

    @app.route('/api/bookings', methods=['POST'])
    async def create_booking():
        """Create a booking and tell the admins about it."""
        data = request.get_json(silent=True) or {}
        try:
            booking = _parse_booking_payload(data)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        db.session.add(booking)
        db.session.commit()
        app.logger.info(f"Booking {booking.id} created ({booking.booking_category})")

        # Never raises; notification problems only show up in the logs.
        await get_notifier().notify_admins_of_new_booking(booking)

        return jsonify(booking.to_dict()), 201

    @app.route('/api/bookings', methods=['GET'])
    def list_bookings():
        """Search, sort and page through bookings."""
        query = db.session.query(Booking)
        category = request.args.get('category')
        if category:
            query = query.filter_by(booking_category=category)
        bookings = query.order_by(Booking.booked_at.desc()).all()

        sort_key = request.args.get('sort')
        direction = DESCENDING if request.args.get('direction') == DESCENDING else ASCENDING
        table = SimpleTable(
            bookings,
            search_keys=BOOKING_SEARCH_KEYS,
            rows_per_page=request.args.get('per_page', 10, type=int),
            initial_sort=SortConfig(sort_key, direction) if sort_key else None
        )
        table.set_search_term(request.args.get('search', ''))
        table.go_to_page(request.args.get('page', 0, type=int))
        return jsonify(table.to_dict(serialize=lambda booking: booking.to_dict()))

    @app.route('/api/bookings/<booking_id>', methods=['GET'])
    def get_booking(booking_id):
        return jsonify(_get_booking(booking_id).to_dict())

    @app.route('/api/bookings/<booking_id>/approve', methods=['POST'])
    async def approve_booking(booking_id):
        """Approve a pending booking; keyholders hear about dormitory approvals."""
        booking = _get_booking(booking_id)
        if booking.approval_status != 'pending':
            raise InvalidStatusTransition(
                f"Booking {booking_id} is already {booking.approval_status}"
            )
        booking.approval_status = 'approved'
        db.session.commit()
        app.logger.info(f"Booking {booking_id} approved")

        await get_notifier().notify_keyholders_of_dorm_approval(booking)

        return jsonify(booking.to_dict())

    @app.route('/api/bookings/<booking_id>/reject', methods=['POST'])
    def reject_booking(booking_id):
        booking = _get_booking(booking_id)
        if booking.approval_status != 'pending':
            raise InvalidStatusTransition(
                f"Booking {booking_id} is already {booking.approval_status}"
            )
        booking.approval_status = 'rejected'
        db.session.commit()
        app.logger.info(f"Booking {booking_id} rejected")
        return jsonify(booking.to_dict())

    @app.route('/api/bookings/<booking_id>/payment', methods=['POST'])
    def update_payment_status(booking_id):
        data = request.get_json(silent=True) or {}
        status = data.get('payment_status')
        if status not in PAYMENT_STATUSES:
            return jsonify({'error': f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}"}), 400

        booking = _get_booking(booking_id)
        booking.payment_status = status
        db.session.commit()
        app.logger.info(f"Booking {booking_id} payment status set to {status}")
        return jsonify(booking.to_dict())

    @app.route('/api/notifications', methods=['GET'])
    def list_notifications():
        role = request.args.get('role', 'admin')
        notifications = NotificationRepository(db.session).list_for_role(role)
        return jsonify({
            'notifications': [n.to_dict() for n in notifications],
            'unread': sum(1 for n in notifications if not n.is_read)
        })

    @app.route('/api/notifications/<int:notification_id>/read', methods=['POST'])
    def mark_notification_read(notification_id):
        notification = NotificationRepository(db.session).mark_as_read(notification_id)
        return jsonify(notification.to_dict())

    @app.route('/api/notifications/read-all', methods=['POST'])
    def mark_all_notifications_read():
        role = request.args.get('role', 'admin')
        updated = NotificationRepository(db.session).mark_all_as_read(role)
        return jsonify({'updated': updated})

    @app.route('/api/companies', methods=['POST'])
    @limiter.limit("10/minute")
    def register_company():
        data = request.get_json(silent=True) or {}
        if not data.get('name') or not data.get('email'):
            return jsonify({'error': 'name and email are required'}), 400
        company = SqlCompanyRepository(db.session).add(
            name=data['name'],
            email=data['email'],
            contact_person=data.get('contact_person'),
            phone=data.get('phone')
        )
        return jsonify(company.to_dict()), 201

    @app.route('/api/companies', methods=['GET'])
    def list_companies():
        companies = SqlCompanyRepository(db.session).list(request.args.get('status'))
        return jsonify({'companies': [c.to_dict() for c in companies]})

    @app.route('/api/companies/<company_id>/<action>', methods=['POST'])
    def update_company_status(company_id, action):
        statuses = {'approve': 'approved', 'reject': 'rejected'}
        if action not in statuses:
            return jsonify({'error': f'Unknown action: {action}'}), 404
        company = SqlCompanyRepository(db.session).set_approval_status(company_id, statuses[action])
        return jsonify(company.to_dict())

    @app.route('/api/translate', methods=['POST'])
    @limiter.limit("20/minute")
    def translate():
        data = request.get_json(silent=True) or {}
        try:
            result = _services()['translator'].translate(
                data.get('text', ''),
                data.get('source_language', 'English')
            )
        except TranslationError as e:
            app.logger.error(f"Translation failed: {str(e)}")
            return jsonify({'error': str(e)}), 502
        return jsonify(result)

    @app.route('/health', methods=['GET'])
    @limiter.exempt
    def health_check():
        """Health check endpoint."""
        try:
            db.session.execute(text('SELECT 1'))
            sms_status = "healthy" if _services()['sms_service'].enabled else "disabled"
            return jsonify({
                'status': 'healthy' if sms_status == 'healthy' else 'degraded',
                'components': {
                    'database': 'healthy',
                    'sms_service': sms_status,
                },
                'timestamp': datetime.now(pytz.UTC).isoformat()
            })
        except Exception as e:
            app.logger.error(f"Health check failed: {str(e)}")
            return jsonify({
                'status': 'unhealthy',
                'error': str(e)
            }), 500


if __name__ == '__main__':
    import os
    application = create_app()
    with application.app_context():
        db.create_all()
    application.run(host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
