"""Initial schema: sales accounts, customers, status history, delete requests, audit logs

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

Adds:
- sales: accounts with role and registration approval state
- customers: soft-deletable, optimistic version column, status CHECK constraint
- status_history: append-only status log
- customer_delete_requests: at most one PENDING request per customer (partial unique index)
- audit_logs
"""
from alembic import op
import sqlalchemy as sa


revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

CUSTOMER_STATUSES = ('NEW', 'NOTIFIED', 'ABORTED', 'SUBMITTED', 'CERTIFIED', 'CERTIFIED_ELSEWHERE')
REQUEST_STATUSES = ('PENDING', 'APPROVED', 'REJECTED')


def _in(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def upgrade() -> None:
    # --- sales ---
    op.create_table(
        'sales',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='SALES'),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('approval_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('approved_by_phone', sa.String(length=20), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sales_phone', 'sales', ['phone'], unique=True)
    op.create_index('ix_sales_approval_status', 'sales', ['approval_status'])

    # --- customers ---
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('certificate_issuer', sa.String(length=255), nullable=True),
        sa.Column('business_requirements', sa.Text(), nullable=True),
        sa.Column('certificate_type', sa.String(length=64), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('education', sa.String(length=32), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('id_card', sa.String(length=50), nullable=True),
        sa.Column('customer_agent', sa.String(length=255), nullable=True),
        sa.Column('customer_type', sa.String(length=32), nullable=False, server_default='NEW_CUSTOMER'),
        sa.Column('sales_phone', sa.String(length=20), nullable=True),
        sa.Column('current_status', sa.String(length=32), nullable=False, server_default='NEW'),
        sa.Column('certified_at', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(_in('current_status', CUSTOMER_STATUSES), name='customer_status'),
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'], unique=True)
    op.create_index('ix_customers_sales_phone', 'customers', ['sales_phone'])
    op.create_index('ix_customers_current_status', 'customers', ['current_status'])
    op.create_index('ix_customers_deleted_at', 'customers', ['deleted_at'])

    # --- status_history ---
    op.create_table(
        'status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('from_status', sa.String(length=32), nullable=True),
        sa.Column('to_status', sa.String(length=32), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.String(length=20), nullable=True),
        sa.Column('changed_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_status_history_customer_id', 'status_history', ['customer_id'])
    op.create_index('ix_status_history_changed_at', 'status_history', ['changed_at'])

    # --- customer_delete_requests ---
    op.create_table(
        'customer_delete_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=20), nullable=False),
        sa.Column('requested_by_id', sa.Uuid(), nullable=False),
        sa.Column('requested_by_phone', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('request_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('reviewed_by', sa.String(length=20), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('approval_reason', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['requested_by_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(_in('request_status', REQUEST_STATUSES), name='delete_request_status'),
    )
    op.create_index('ix_customer_delete_requests_customer_id', 'customer_delete_requests', ['customer_id'])
    op.create_index('ix_customer_delete_requests_requested_by_id', 'customer_delete_requests', ['requested_by_id'])
    op.create_index('ix_customer_delete_requests_request_status', 'customer_delete_requests', ['request_status'])
    op.create_index('ix_customer_delete_requests_created_at', 'customer_delete_requests', ['created_at'])
    op.create_index(
        'uq_customer_delete_requests_pending',
        'customer_delete_requests',
        ['customer_id'],
        unique=True,
        postgresql_where=sa.text("request_status = 'PENDING'"),
        sqlite_where=sa.text("request_status = 'PENDING'"),
    )

    # --- audit_logs ---
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_phone', sa.String(length=20), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=100), nullable=True),
        sa.Column('resource_id', sa.String(length=64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_actor_phone', 'audit_logs', ['actor_phone'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_index('uq_customer_delete_requests_pending', table_name='customer_delete_requests')
    op.drop_table('customer_delete_requests')
    op.drop_table('status_history')
    op.drop_table('customers')
    op.drop_table('sales')
