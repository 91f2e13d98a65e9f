"""initial stockroom schema"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '20261019_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _reference_columns():
    return [
        sa.Column('reference_type', sa.String(16)),
        sa.Column('reference_id', sa.String(255)),
    ]


def upgrade() -> None:
    op.create_table(
        'members',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'spaces',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('owner_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id'), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        'space_memberships',
        sa.Column('member_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('space_id', sa.UUID(as_uuid=True), sa.ForeignKey('spaces.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='MEMBER'),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_table(
        'locations',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('space_id', sa.UUID(as_uuid=True), sa.ForeignKey('spaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('parent_location_id', sa.UUID(as_uuid=True), sa.ForeignKey('locations.id', ondelete='CASCADE')),
        sa.Column('location_type', sa.String(16), nullable=False, server_default='OTHER'),
        *_reference_columns(),
        sa.Column('created_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        sa.Column('updated_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        *_timestamps(),
        sa.UniqueConstraint('space_id', 'reference_id', name='uq_location_reference'),
    )
    op.create_index('ix_locations_space_id', 'locations', ['space_id'])
    op.create_index('ix_locations_parent_location_id', 'locations', ['parent_location_id'])

    op.create_table(
        'items',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('space_id', sa.UUID(as_uuid=True), sa.ForeignKey('spaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('image_url', sa.String()),
        sa.Column('location_id', sa.UUID(as_uuid=True), sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        *_reference_columns(),
        sa.Column('created_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        sa.Column('updated_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        sa.Column('last_moved_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        *_timestamps(),
        sa.CheckConstraint('quantity >= 0', name='ck_item_quantity_non_negative'),
        sa.UniqueConstraint('space_id', 'reference_id', name='uq_item_reference'),
    )
    op.create_index('ix_items_space_id', 'items', ['space_id'])
    op.create_index('ix_items_location_id', 'items', ['location_id'])

    op.create_table(
        'tags',
        sa.Column('id', sa.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(7)),
        sa.Column('space_id', sa.UUID(as_uuid=True), sa.ForeignKey('spaces.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.UniqueConstraint('space_id', 'name', name='uq_tag_space_name'),
    )
    op.create_index('ix_tags_space_id', 'tags', ['space_id'])

    op.create_table(
        'item_tags',
        sa.Column('item_id', sa.UUID(as_uuid=True), sa.ForeignKey('items.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tag_id', sa.UUID(as_uuid=True), sa.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    # ledger rows outlive everything they point at
    op.create_table(
        'movement_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('space_id', sa.UUID(as_uuid=True), sa.ForeignKey('spaces.id', ondelete='SET NULL')),
        sa.Column('item_id', sa.UUID(as_uuid=True), sa.ForeignKey('items.id', ondelete='SET NULL')),
        sa.Column('from_location_id', sa.UUID(as_uuid=True), sa.ForeignKey('locations.id', ondelete='SET NULL')),
        sa.Column('to_location_id', sa.UUID(as_uuid=True), sa.ForeignKey('locations.id', ondelete='SET NULL')),
        sa.Column('moved_by_id', sa.UUID(as_uuid=True), sa.ForeignKey('members.id', ondelete='SET NULL')),
        sa.Column('notes', sa.Text()),
        sa.Column('moved_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('item_name', sa.String(255)),
        sa.Column('from_location_name', sa.String(255)),
        sa.Column('to_location_name', sa.String(255)),
        sa.Column('moved_by_name', sa.String(255)),
    )
    for column in ('space_id', 'item_id', 'from_location_id', 'to_location_id', 'moved_by_id'):
        op.create_index(f'ix_movement_history_{column}', 'movement_history', [column])


def downgrade() -> None:
    op.drop_table('movement_history')
    op.drop_table('item_tags')
    op.drop_index('ix_tags_space_id', table_name='tags')
    op.drop_table('tags')
    op.drop_index('ix_items_location_id', table_name='items')
    op.drop_index('ix_items_space_id', table_name='items')
    op.drop_table('items')
    op.drop_index('ix_locations_parent_location_id', table_name='locations')
    op.drop_index('ix_locations_space_id', table_name='locations')
    op.drop_table('locations')
    op.drop_table('space_memberships')
    op.drop_table('spaces')
    op.drop_table('members')
