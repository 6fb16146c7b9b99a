#!/usr/bin/env python3
import asyncio
import logging
from logging.config import dictConfig

import click

from .app import create_app, get_notifier, _get_booking
from .config import Settings
from .exceptions import BookingNotFound
from .features.phone_directory.code import PhoneDirectory
from .features.sms.code import SMSService
from .models import db, User, USER_ROLES
from .rate_limiter import APIRateLimiter

# Configure logging
dictConfig({
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
            'level': 'INFO'
        }
    },
    'root': {
        'level': 'INFO',
        'handlers': ['console']
    }
})

logger = logging.getLogger(__name__)

SAMPLE_STAFF = [
    {'email': 'admin@rentals.local', 'name': 'Dormitory Admin', 'role': 'admin'},
    {'email': 'superadmin@rentals.local', 'name': 'Super Admin', 'role': 'superadmin'},
    {'email': 'keyholder@rentals.local', 'name': 'Dormitory Keyholder', 'role': 'keyholder'},
]


def _print_report(report):
    click.echo(f"Event: {report.event} (booking {report.booking_id})")
    if report.skipped_reason:
        click.echo(f"Skipped: {report.skipped_reason}")
    for result in report.sms_results:
        line = f"  {result.to}: {result.status}"
        if result.reason:
            line += f" ({result.reason})"
        click.echo(line)
    if report.notification_id is not None:
        click.echo(f"Web notification: {report.notification_id}")
    if report.error:
        click.echo(f"Error: {report.error}", err=True)


@click.group()
@click.pass_context
def cli(ctx):
    """Rental booking notification CLI"""
    ctx.ensure_object(dict)
    if 'app' not in ctx.obj:
        ctx.obj['app'] = create_app()


@cli.command('init-db')
@click.pass_context
def init_db(ctx):
    """Create all database tables."""
    with ctx.obj['app'].app_context():
        db.create_all()
    click.echo("Database tables created")


@cli.command('send-test-sms')
@click.argument('phone')
@click.argument('message')
def send_test_sms(phone, message):
    """Send a single SMS through AfroMessage."""
    settings = Settings.from_env()
    service = SMSService.from_settings(settings, rate_limiter=APIRateLimiter())
    result = service.send_sms(phone, message)

    if result.ok:
        click.echo(f"SMS sent to {result.to}")
    else:
        click.echo(f"SMS {result.status}: {result.reason}", err=True)
        raise SystemExit(1)


@cli.command('list-phones')
@click.option('--role', 'roles', multiple=True, required=True,
              type=click.Choice(USER_ROLES), help='Role to look up, repeatable')
@click.pass_context
def list_phones(ctx, roles):
    """Print the notification numbers for the given roles."""
    with ctx.obj['app'].app_context():
        numbers = PhoneDirectory(db.session).get_phone_numbers(roles)

    if not numbers:
        click.echo("No phone numbers found")
        return
    for number in numbers:
        click.echo(number)


def _run_for_booking(app, booking_id, handler_name):
    with app.app_context():
        try:
            booking = _get_booking(booking_id)
        except BookingNotFound as e:
            click.echo(str(e), err=True)
            raise SystemExit(1)
        notifier = get_notifier()
        report = asyncio.run(getattr(notifier, handler_name)(booking))
    _print_report(report)


@cli.command('notify-booking')
@click.argument('booking_id')
@click.pass_context
def notify_booking(ctx, booking_id):
    """Re-send the new booking alert to admins."""
    _run_for_booking(ctx.obj['app'], booking_id, 'notify_admins_of_new_booking')


@cli.command('notify-approval')
@click.argument('booking_id')
@click.pass_context
def notify_approval(ctx, booking_id):
    """Re-send the dormitory approval alert to keyholders."""
    _run_for_booking(ctx.obj['app'], booking_id, 'notify_keyholders_of_dorm_approval')


@cli.command('seed-dormitory-users')
@click.option('--admin-phone', default=None, help='Phone number for the sample admin')
@click.option('--keyholder-phone', default=None, help='Phone number for the sample keyholder')
@click.pass_context
def seed_dormitory_users(ctx, admin_phone, keyholder_phone):
    """Create sample admin, superadmin and keyholder accounts."""
    phones = {'admin': admin_phone, 'superadmin': admin_phone, 'keyholder': keyholder_phone}

    with ctx.obj['app'].app_context():
        db.create_all()
        created = 0
        for staff in SAMPLE_STAFF:
            if db.session.query(User).filter_by(email=staff['email']).first():
                click.echo(f"Exists: {staff['email']}")
                continue
            db.session.add(User(phone=phones[staff['role']], **staff))
            created += 1
            click.echo(f"Added {staff['role']}: {staff['email']}")
        db.session.commit()

    logger.info(f"Seeded {created} staff users")
    click.echo(f"Seeding complete, {created} users added")


if __name__ == '__main__':
    cli()
