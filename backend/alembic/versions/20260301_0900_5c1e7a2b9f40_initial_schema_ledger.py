"""Initial schema: users, invoices, bookings, payments (processed events), audit logs

Revision ID: 5c1e7a2b9f40
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5c1e7a2b9f40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Create the ledger tables."""
    op.execute("CREATE TYPE userrole AS ENUM ('admin', 'editor', 'client')")
    op.execute("CREATE TYPE invoicestatus AS ENUM ('draft', 'sent', 'unpaid', 'partial', 'paid', 'overdue', 'cancelled')")
    op.execute(
        "CREATE TYPE bookingstatus AS ENUM "
        "('pending', 'pending_payment', 'confirmed', 'completed', 'cancelled', 'no_show')"
    )
    op.execute("CREATE TYPE settlementstatus AS ENUM ('pending', 'applied', 'skipped', 'failed')")

    # 1. Users (id is the identity provider uid)
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', postgresql.ENUM(name='userrole', create_type=False), nullable=False, server_default='client'),
        sa.Column('is_super_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('stripe_customer_id', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_customer_id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'])
    op.create_index(op.f('ix_users_role'), 'users', ['role'])
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'])

    # 2. Bookings
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column('client_id', sa.String(), nullable=True),
        sa.Column('client_email', sa.String(), nullable=True),
        sa.Column('service_name', sa.String(), nullable=False),
        sa.Column('start_at', sa.DateTime(), nullable=True),
        sa.Column('total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deposit_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', postgresql.ENUM(name='bookingstatus', create_type=False), nullable=False, server_default='pending'),
        sa.Column('payment', postgresql.JSONB(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bookings_client_id'), 'bookings', ['client_id'])
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'])
    op.create_index(op.f('ix_bookings_created_at'), 'bookings', ['created_at'])

    # 3. Invoices
    op.create_table(
        'invoices',
        sa.Column('id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('client_id', sa.String(), nullable=True),
        sa.Column('booking_id', sa.String(), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='usd'),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('amount_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_due', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM(name='invoicestatus', create_type=False), nullable=False, server_default='unpaid'),
        sa.Column('payment', postgresql.JSONB(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
    op.create_index(op.f('ix_invoices_client_id'), 'invoices', ['client_id'])
    op.create_index(op.f('ix_invoices_booking_id'), 'invoices', ['booking_id'])
    op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'])
    op.create_index(op.f('ix_invoices_created_at'), 'invoices', ['created_at'])

    # 4. Payments: one row per processed Stripe event, keyed by event id
    op.create_table(
        'payments',
        sa.Column('id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('payment_intent_id', sa.String(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created', sa.DateTime(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('invoice_id', sa.String(), nullable=True),
        sa.Column('payment_metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('processed_at', sa.DateTime(), nullable=False),
        sa.Column(
            'settlement_status',
            postgresql.ENUM(name='settlementstatus', create_type=False),
            nullable=False,
            server_default='pending',
        ),
        sa.Column('settlement_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('settlement_error', sa.Text(), nullable=True),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_payments_event_type'), 'payments', ['event_type'])
    op.create_index(op.f('ix_payments_payment_intent_id'), 'payments', ['payment_intent_id'])
    op.create_index(op.f('ix_payments_created'), 'payments', ['created'])
    op.create_index(op.f('ix_payments_user_id'), 'payments', ['user_id'])
    op.create_index(op.f('ix_payments_invoice_id'), 'payments', ['invoice_id'])
    op.create_index(op.f('ix_payments_settlement_status'), 'payments', ['settlement_status'])
    op.create_index(op.f('ix_payments_created_at'), 'payments', ['created_at'])

    # 5. Audit logs
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('changes', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('request_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_entity_type'), 'audit_logs', ['entity_type'])
    op.create_index(op.f('ix_audit_logs_entity_id'), 'audit_logs', ['entity_id'])
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Drop the ledger tables."""
    op.drop_table('audit_logs')
    op.drop_table('payments')
    op.drop_table('invoices')
    op.drop_table('bookings')
    op.drop_table('users')

    op.execute('DROP TYPE IF EXISTS settlementstatus')
    op.execute('DROP TYPE IF EXISTS bookingstatus')
    op.execute('DROP TYPE IF EXISTS invoicestatus')
    op.execute('DROP TYPE IF EXISTS userrole')
