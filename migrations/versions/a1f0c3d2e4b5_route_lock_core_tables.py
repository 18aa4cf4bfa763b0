"""route-lock core tables: orgs, roster, routes, fiscal months, schedules, quotas

Revision ID: a1f0c3d2e4b5
Revises:
Create Date: 2025-11-20 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c3d2e4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DAYS = ('sun', 'mon', 'tue', 'wed', 'thu', 'fri', 'sat')


def upgrade() -> None:
    op.create_table(
        'pc_orgs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'persons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('full_name', sa.String(160), nullable=True),
        sa.Column('tech_id', sa.String(32), nullable=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'org_memberships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('person_id', sa.Integer(), sa.ForeignKey('persons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pc_org_id', sa.Integer(), sa.ForeignKey('pc_orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_org_memberships_person_id', 'org_memberships', ['person_id'])
    op.create_index('ix_org_memberships_pc_org_id', 'org_memberships', ['pc_org_id'])
    op.create_index('ix_org_membership_org_person', 'org_memberships', ['pc_org_id', 'person_id'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('person_id', sa.Integer(), sa.ForeignKey('persons.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('pc_org_id', sa.Integer(), sa.ForeignKey('pc_orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('position_title', sa.String(120), nullable=True),
        sa.Column('tech_id', sa.String(32), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reports_to_assignment_id', sa.Integer(), sa.ForeignKey('assignments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reports_to_person_id', sa.Integer(), sa.ForeignKey('persons.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_assignments_person_id', 'assignments', ['person_id'])
    op.create_index('ix_assignments_pc_org_id', 'assignments', ['pc_org_id'])
    op.create_index('ix_assignment_org_active', 'assignments', ['pc_org_id', 'active'])

    op.create_table(
        'routes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pc_org_id', sa.Integer(), sa.ForeignKey('pc_orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('route_name', sa.String(120), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('pc_org_id', 'route_name', name='uq_route_org_name'),
    )
    op.create_index('ix_routes_pc_org_id', 'routes', ['pc_org_id'])

    op.create_table(
        'fiscal_months',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('label', sa.String(40), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.UniqueConstraint('start_date', name='uq_fiscal_month_start'),
        sa.CheckConstraint('end_date >= start_date', name='ck_fiscal_month_range'),
    )
    op.create_index('ix_fiscal_months_start_date', 'fiscal_months', ['start_date'])
    op.create_index('ix_fiscal_months_end_date', 'fiscal_months', ['end_date'])

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('default_route_id', sa.Integer(), sa.ForeignKey('routes.id', ondelete='SET NULL'), nullable=True),
        sa.Column('schedule_name', sa.String(140), nullable=False, server_default='planning_week'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        *[sa.Column(d, sa.Boolean(), nullable=False, server_default=sa.false()) for d in DAYS],
        *[sa.Column(f'hours_{d}', sa.Integer(), nullable=False, server_default='0') for d in DAYS],
        *[sa.Column(f'units_{d}', sa.Integer(), nullable=False, server_default='0') for d in DAYS],
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_schedules_assignment_id', 'schedules', ['assignment_id'])
    op.create_index('ix_schedules_start_date', 'schedules', ['start_date'])
    op.create_index('ix_schedules_end_date', 'schedules', ['end_date'])
    op.create_index('ix_schedule_assignment_range', 'schedules', ['assignment_id', 'start_date', 'end_date'])
    # one open window per assignment
    op.create_index(
        'uq_schedule_open_per_assignment',
        'schedules',
        ['assignment_id'],
        unique=True,
        postgresql_where=sa.text('end_date IS NULL'),
        sqlite_where=sa.text('end_date IS NULL'),
    )

    op.create_table(
        'quotas',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pc_org_id', sa.Integer(), sa.ForeignKey('pc_orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('route_id', sa.Integer(), sa.ForeignKey('routes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('fiscal_month_id', sa.Integer(), sa.ForeignKey('fiscal_months.id', ondelete='RESTRICT'), nullable=False),
        *[sa.Column(f'qh_{d}', sa.Integer(), nullable=False, server_default='0') for d in DAYS],
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('pc_org_id', 'route_id', 'fiscal_month_id', name='uq_quota_org_route_month'),
    )
    op.create_index('ix_quotas_pc_org_id', 'quotas', ['pc_org_id'])
    op.create_index('ix_quotas_route_id', 'quotas', ['route_id'])
    op.create_index('ix_quotas_fiscal_month_id', 'quotas', ['fiscal_month_id'])

    op.create_table(
        'shift_validation_rows',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pc_org_id', sa.Integer(), sa.ForeignKey('pc_orgs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('tech_num', sa.String(32), nullable=True),
        sa.Column('route_name', sa.String(120), nullable=True),
        sa.Column('imported_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_shift_validation_org_date', 'shift_validation_rows', ['pc_org_id', 'shift_date'])


def downgrade() -> None:
    for table in (
        'shift_validation_rows',
        'quotas',
        'schedules',
        'fiscal_months',
        'routes',
        'assignments',
        'org_memberships',
        'persons',
        'pc_orgs',
    ):
        op.drop_table(table)
