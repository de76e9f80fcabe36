"""initial furfolio entity and audit tables

Revision ID: 0001_initial_furfolio
Revises:
Create Date: 2025-06-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_furfolio'
down_revision = None
branch_labels = None
depends_on = None


def _entity_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table('dog_owners', *_entity_columns(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('contact_info', sa.String(length=128)),
        sa.Column('address', sa.String(length=255)),
    )
    op.create_index('ix_dog_owners_name', 'dog_owners', ['name'])

    op.create_table('dogs', *_entity_columns(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('breed', sa.String(length=64)),
        sa.Column('birthdate', sa.Date()),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_dogs_owner_id', 'dogs', ['owner_id'])

    op.create_table('appointments', *_entity_columns(),
        sa.Column('date', sa.DateTime(timezone=True)),
        sa.Column('service_type', sa.String(length=32), nullable=False, server_default='basic'),
        sa.Column('notes', sa.String(length=512)),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True),
        sa.Column('dog_id', sa.Uuid(), sa.ForeignKey('dogs.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_appointments_date', 'appointments', ['date'])
    op.create_index('ix_appointments_owner_id', 'appointments', ['owner_id'])
    op.create_index('ix_appointments_dog_id', 'appointments', ['dog_id'])

    op.create_table('charges', *_entity_columns(),
        sa.Column('date', sa.DateTime(timezone=True)),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.String(length=512)),
        sa.Column('owner_id', sa.Uuid(), sa.ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True),
        sa.Column('dog_id', sa.Uuid(), sa.ForeignKey('dogs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('appointment_id', sa.Uuid(), sa.ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_charges_owner_id', 'charges', ['owner_id'])
    op.create_index('ix_charges_dog_id', 'charges', ['dog_id'])
    op.create_index('ix_charges_appointment_id', 'charges', ['appointment_id'])

    op.create_table('staff_members', *_entity_columns(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='groomer'),
        sa.Column('email', sa.String(length=128)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
    )

    op.create_table('users', *_entity_columns(),
        sa.Column('username', sa.String(length=64), nullable=False, unique=True),
        sa.Column('email', sa.String(length=128)),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='unknown'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
    )
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table('tasks', *_entity_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('due_date', sa.Date()),
    )

    op.create_table('vaccination_records', *_entity_columns(),
        sa.Column('vaccine_type', sa.String(length=64), nullable=False),
        sa.Column('date_administered', sa.Date()),
        sa.Column('expiration_date', sa.Date()),
        sa.Column('dog_id', sa.Uuid(), sa.ForeignKey('dogs.id', ondelete='CASCADE'), nullable=True),
    )
    op.create_index('ix_vaccination_records_dog_id', 'vaccination_records', ['dog_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='unknown'),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for table in ('audit_logs', 'vaccination_records', 'tasks', 'users', 'staff_members',
                  'charges', 'appointments', 'dogs', 'dog_owners'):
        op.drop_table(table)
