"""initial vendor hierarchy tables

Revision ID: 0001_initial_vendor_hierarchy
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_vendor_hierarchy'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('vendors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unique_id', sa.String(length=64), nullable=False, unique=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32)),
        sa.Column('address', sa.String(length=255)),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('region', sa.String(length=16)),
        sa.Column('city', sa.String(length=100)),
        sa.Column('locality', sa.String(length=100)),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='ACTIVE'),
        sa.Column('parent_id', sa.String(length=64), sa.ForeignKey('vendors.unique_id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))
    )
    op.create_index('ix_vendors_unique_id', 'vendors', ['unique_id'])
    op.create_index('ix_vendors_email', 'vendors', ['email'])
    op.create_index('ix_vendors_level', 'vendors', ['level'])
    op.create_index('ix_vendors_status', 'vendors', ['status'])
    op.create_index('ix_vendors_parent_id', 'vendors', ['parent_id'])
    op.create_index('ix_vendors_level_region', 'vendors', ['level', 'region'])
    op.create_index('ix_vendors_level_city', 'vendors', ['level', 'city'])

    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_name', sa.String(length=64), nullable=False, unique=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('can_delegate', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('delegatable_permissions', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))
    )
    op.create_index('ix_roles_level', 'roles', ['level'])

    op.create_table('default_permission_grants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vendor_unique_id', sa.String(length=64), sa.ForeignKey('vendors.unique_id'), nullable=False, unique=True),
        sa.Column('vendor_level', sa.Integer(), nullable=False),
        sa.Column('granted_permissions', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_default_permission_grants_vendor_unique_id', 'default_permission_grants', ['vendor_unique_id'])

    op.create_table('permission_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('grant_id', sa.Integer(), sa.ForeignKey('default_permission_grants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('granted_by', sa.String(length=64), nullable=False),
        sa.Column('change_type', sa.String(length=16), nullable=False),
        sa.Column('permission', sa.String(length=128), nullable=False),
        sa.Column('previous_value', sa.Boolean(), nullable=False),
        sa.Column('new_value', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_permission_history_grant_id', 'permission_history', ['grant_id'])

    op.create_table('delegations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delegator_id', sa.String(length=64), sa.ForeignKey('vendors.unique_id'), nullable=False),
        sa.Column('delegate_id', sa.String(length=64), sa.ForeignKey('vendors.unique_id'), nullable=False),
        sa.Column('delegation_type', sa.String(length=16), nullable=False),
        sa.Column('delegated_permissions', sa.JSON(), nullable=False),
        sa.Column('delegation_scope', sa.JSON(), nullable=True),
        sa.Column('conditions', sa.JSON(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_delegations_delegator_id', 'delegations', ['delegator_id'])
    op.create_index('ix_delegations_delegate_id', 'delegations', ['delegate_id'])
    op.create_index('ix_delegations_end_date', 'delegations', ['end_date'])
    op.create_index('ix_delegations_status', 'delegations', ['status'])
    op.create_index('ix_delegations_pair_status', 'delegations', ['delegator_id', 'delegate_id', 'status'])

    op.create_table('delegation_audit_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('delegation_id', sa.Integer(), sa.ForeignKey('delegations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('performed_by', sa.String(length=64), nullable=False),
        sa.Column('details', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_delegation_audit_entries_delegation_id', 'delegation_audit_entries', ['delegation_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_vendor_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64)),
        sa.Column('entity_id', sa.String(length=64)),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'))
    )
    op.create_index('ix_audit_logs_actor_vendor_id', 'audit_logs', ['actor_vendor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for tbl in ['audit_logs', 'delegation_audit_entries', 'delegations', 'permission_history',
                'default_permission_grants', 'roles', 'vendors']:
        op.drop_table(tbl)
