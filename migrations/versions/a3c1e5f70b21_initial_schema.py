"""initial schema: users, rbac, audit, weddings, guests, guest book, photos

Revision ID: a3c1e5f70b21
Revises:
Create Date: 2026-09-02 10:12:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a3c1e5f70b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('has_paid_subscription', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('payment_order_id', sa.String(length=255), nullable=True),
        sa.Column('payment_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'role_id'),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('permission_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('role_id', 'permission_id'),
    )
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('request_id', sa.String(length=64), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('actor_user_email', sa.String(length=320), nullable=True),
        sa.Column('action', sa.String(length=128), nullable=False),
        sa.Column('entity_type', sa.String(length=128), nullable=True),
        sa.Column('entity_id', sa.String(length=128), nullable=True),
        sa.Column('reason', sa.String(length=512), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('client_ip', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_audit_events_action', 'audit_events', ['action'])
    op.create_index('idx_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])

    op.create_table(
        'weddings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('unique_url', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False, server_default='wedding'),
        sa.Column('bride', sa.String(length=255), nullable=False),
        sa.Column('groom', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('wedding_date', sa.DateTime(), nullable=False),
        sa.Column('wedding_time', sa.String(length=50), nullable=False, server_default='4:00 PM'),
        sa.Column('timezone', sa.String(length=100), nullable=False, server_default='Asia/Tashkent'),
        sa.Column('venue', sa.String(length=500), nullable=False),
        sa.Column('venue_address', sa.Text(), nullable=False),
        sa.Column('venue_coordinates', sa.JSON(), nullable=True),
        sa.Column('map_pin_url', sa.Text(), nullable=True),
        sa.Column('story', sa.Text(), nullable=True),
        sa.Column('welcome_message', sa.Text(), nullable=True),
        sa.Column('dear_guest_message', sa.Text(), nullable=True),
        sa.Column('dress_code', sa.Text(), nullable=True),
        sa.Column('couple_photo_url', sa.Text(), nullable=True),
        sa.Column('couple_photo_key', sa.String(length=512), nullable=True),
        sa.Column('background_template', sa.String(length=100), nullable=True, server_default='template1'),
        sa.Column('template', sa.String(length=100), nullable=False, server_default='gardenRomance'),
        sa.Column('primary_color', sa.String(length=20), nullable=False, server_default='#D4B08C'),
        sa.Column('accent_color', sa.String(length=20), nullable=False, server_default='#89916B'),
        sa.Column('background_music_url', sa.Text(), nullable=True),
        sa.Column('background_music_key', sa.String(length=512), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('rsvp_mode', sa.String(length=32), nullable=False, server_default='both'),
        sa.Column('rsvp_deadline', sa.DateTime(), nullable=True),
        sa.Column('available_languages', sa.JSON(), nullable=False),
        sa.Column('default_language', sa.String(length=10), nullable=False, server_default='en'),
        sa.Column('age', sa.String(length=50), nullable=True),
        sa.Column('party_theme', sa.Text(), nullable=True),
        sa.Column('gift_registry_info', sa.Text(), nullable=True),
        sa.Column('contact_person', sa.Text(), nullable=True),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('unique_url'),
    )
    op.create_index('idx_weddings_user', 'weddings', ['user_id'])

    op.create_table(
        'guests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('rsvp_status', sa.String(length=50), nullable=False, server_default='pending'),
        sa.Column('response_text', sa.Text(), nullable=True),
        sa.Column('plus_one', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('plus_one_name', sa.String(length=255), nullable=True),
        sa.Column('additional_guests', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('responded_at', sa.DateTime(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False, server_default='family'),
        sa.Column('side', sa.String(length=20), nullable=False, server_default='both'),
        sa.Column('dietary_restrictions', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('invitation_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('invitation_sent_at', sa.DateTime(), nullable=True),
        sa.Column('added_by', sa.String(length=50), nullable=False, server_default='couple'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_guests_wedding', 'guests', ['wedding_id'])
    op.create_index('idx_guests_wedding_status', 'guests', ['wedding_id', 'rsvp_status'])

    op.create_table(
        'guest_book_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('guest_name', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_guest_book_wedding_created', 'guest_book_entries', ['wedding_id', 'created_at'])

    op.create_table(
        'photos',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wedding_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('storage_key', sa.String(length=512), nullable=True),
        sa.Column('content_type', sa.String(length=128), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('caption', sa.Text(), nullable=True),
        sa.Column('is_hero', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('photo_type', sa.String(length=50), nullable=False, server_default='memory'),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.Column('uploaded_by_user_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['uploaded_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['wedding_id'], ['weddings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_photos_wedding', 'photos', ['wedding_id'])


def downgrade() -> None:
    op.drop_index('idx_photos_wedding', table_name='photos')
    op.drop_table('photos')
    op.drop_index('idx_guest_book_wedding_created', table_name='guest_book_entries')
    op.drop_table('guest_book_entries')
    op.drop_index('idx_guests_wedding_status', table_name='guests')
    op.drop_index('idx_guests_wedding', table_name='guests')
    op.drop_table('guests')
    op.drop_index('idx_weddings_user', table_name='weddings')
    op.drop_table('weddings')
    op.drop_index('idx_audit_events_entity', table_name='audit_events')
    op.drop_index('idx_audit_events_action', table_name='audit_events')
    op.drop_table('audit_events')
    op.drop_table('role_permissions')
    op.drop_table('user_roles')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_table('users')
