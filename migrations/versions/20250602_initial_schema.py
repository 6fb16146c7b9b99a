"""Initial rental schema

Revision ID: 20250602_initial
Revises:
Create Date: 2025-06-02 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
import logging

# revision identifiers, used by Alembic.
revision = '20250602_initial'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger('alembic.env')


def table_exists(table_name):
    """Check if a table exists."""
    return table_name in sa.inspect(op.get_bind()).get_table_names()


def upgrade() -> None:
    """Create users, companies, bookings and admin_notifications."""
    if not table_exists('users'):
        logger.info("Creating users table")
        op.create_table(
            'users',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=True),
            sa.Column('role', sa.String(length=30), nullable=False),
            sa.Column('phone', sa.String(length=30), nullable=True),
            sa.Column('company_id', sa.String(length=32), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('email')
        )
        op.create_index('ix_users_role', 'users', ['role'])
    else:
        logger.info("Users table already exists")

    if not table_exists('companies'):
        logger.info("Creating companies table")
        op.create_table(
            'companies',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('contact_person', sa.String(length=255), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('phone', sa.String(length=30), nullable=True),
            sa.Column('approval_status', sa.String(length=20), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('email')
        )
    else:
        logger.info("Companies table already exists")

    if not table_exists('bookings'):
        logger.info("Creating bookings table")
        op.create_table(
            'bookings',
            sa.Column('id', sa.String(length=32), nullable=False),
            sa.Column('booking_category', sa.String(length=20), nullable=False),
            sa.Column('guest_name', sa.String(length=255), nullable=True),
            sa.Column('company_name', sa.String(length=255), nullable=True),
            sa.Column('company_id', sa.String(length=32), nullable=True),
            sa.Column('phone', sa.String(length=30), nullable=True),
            sa.Column('items', sa.JSON(), nullable=False),
            sa.Column('start_date', sa.Date(), nullable=False),
            sa.Column('end_date', sa.Date(), nullable=False),
            sa.Column('total_cost', sa.Float(), nullable=False),
            sa.Column('approval_status', sa.String(length=20), nullable=False),
            sa.Column('payment_status', sa.String(length=30), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('booked_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
    else:
        logger.info("Bookings table already exists")

    if not table_exists('admin_notifications'):
        logger.info("Creating admin_notifications table")
        op.create_table(
            'admin_notifications',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('message', sa.Text(), nullable=False),
            sa.Column('type', sa.String(length=40), nullable=False),
            sa.Column('related_id', sa.String(length=32), nullable=True),
            sa.Column('recipient_role', sa.String(length=30), nullable=False),
            sa.Column('is_read', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('link', sa.String(length=255), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_admin_notifications_recipient_role', 'admin_notifications', ['recipient_role'])
    else:
        logger.info("Admin notifications table already exists")


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_admin_notifications_recipient_role', table_name='admin_notifications')
    op.drop_table('admin_notifications')
    op.drop_table('bookings')
    op.drop_table('companies')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
