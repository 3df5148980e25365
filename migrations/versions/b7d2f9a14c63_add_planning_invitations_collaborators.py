"""add milestones, budget, invitations, collaborators and wedding access

Revision ID: b7d2f9a14c63
Revises: a3c1e5f70b21
Create Date: 2026-09-16 14:40:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7d2f9a14c63'
down_revision: Union[str, Sequence[str], None] = 'a3c1e5f70b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'milestones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('assigned_to', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_milestones_wedding_due', 'milestones', ['wedding_id', 'due_date'])

    op.create_table(
        'budget_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('budget_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('spent_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_budget_categories_wedding', 'budget_categories', ['wedding_id'])

    op.create_table(
        'budget_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('estimated_cost', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('actual_cost', sa.Integer(), nullable=True),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['budget_categories.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_budget_items_category', 'budget_items', ['category_id'])
    op.create_index('idx_budget_items_wedding', 'budget_items', ['wedding_id'])

    op.create_table(
        'invitations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('guest_id', sa.Integer(), nullable=False),
        sa.Column('invitation_type', sa.String(length=20), nullable=False),
        sa.Column('recipient_contact', sa.String(length=320), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=True),
        sa.Column('reminder_sent_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['guest_id'], ['guests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_invitations_wedding', 'invitations', ['wedding_id'])
    op.create_index('idx_invitations_guest', 'invitations', ['guest_id'])

    op.create_table(
        'guest_collaborators',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='guest_manager'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('invited_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('invited_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['invited_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_guest_collaborators_wedding', 'guest_collaborators', ['wedding_id'])
    op.create_index('idx_guest_collaborators_email', 'guest_collaborators', ['email'])

    op.create_table(
        'wedding_access',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('access_level', sa.String(length=20), nullable=False, server_default='viewer'),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'wedding_id', name='uq_wedding_access_user_wedding'),
    )
    op.create_index('idx_wedding_access_wedding', 'wedding_access', ['wedding_id'])


def downgrade() -> None:
    op.drop_index('idx_wedding_access_wedding', table_name='wedding_access')
    op.drop_table('wedding_access')
    op.drop_index('idx_guest_collaborators_email', table_name='guest_collaborators')
    op.drop_index('idx_guest_collaborators_wedding', table_name='guest_collaborators')
    op.drop_table('guest_collaborators')
    op.drop_index('idx_invitations_guest', table_name='invitations')
    op.drop_index('idx_invitations_wedding', table_name='invitations')
    op.drop_table('invitations')
    op.drop_index('idx_budget_items_wedding', table_name='budget_items')
    op.drop_index('idx_budget_items_category', table_name='budget_items')
    op.drop_table('budget_items')
    op.drop_index('idx_budget_categories_wedding', table_name='budget_categories')
    op.drop_table('budget_categories')
    op.drop_index('idx_milestones_wedding_due', table_name='milestones')
    op.drop_table('milestones')
