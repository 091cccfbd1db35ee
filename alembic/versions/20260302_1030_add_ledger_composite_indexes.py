"""Add composite indexes for ledger query patterns

Revision ID: 20260302_1030
Revises: 5c1e7a2b9f40
Create Date: 2026-03-02 10:30:00.000000

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '20260302_1030'
down_revision = '5c1e7a2b9f40'
branch_labels = None
depends_on = None


def upgrade():
    """Add composite indexes for ledger query patterns."""

    # Payments: settlement_status + processed_at (retry worker scan)
    op.create_index(
        'ix_payments_settlement_processed',
        'payments',
        ['settlement_status', 'processed_at'],
        unique=False
    )

    # Payments: invoice_id + created (payments settled against an invoice)
    op.create_index(
        'ix_payments_invoice_created',
        'payments',
        ['invoice_id', 'created'],
        unique=False
    )

    # Users: lower(email) (grant admin by email)
    op.execute('CREATE INDEX ix_users_email_lower ON users (lower(email))')

    # Audit logs: entity_type + entity_id + created_at (search audit trail)
    op.create_index(
        'ix_audit_logs_entity_created',
        'audit_logs',
        ['entity_type', 'entity_id', 'created_at'],
        unique=False
    )


def downgrade():
    """Remove composite indexes."""

    op.drop_index('ix_audit_logs_entity_created', table_name='audit_logs')
    op.execute('DROP INDEX IF EXISTS ix_users_email_lower')
    op.drop_index('ix_payments_invoice_created', table_name='payments')
    op.drop_index('ix_payments_settlement_processed', table_name='payments')
