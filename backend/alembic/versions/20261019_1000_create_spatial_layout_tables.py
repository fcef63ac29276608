"""Create grid layout, room and table tables

Revision ID: 20261019_1000
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_1000'
down_revision = None
branch_labels = None
depends_on = None


grid_filter_type = sa.Enum('all', 'favorites', 'category', name='grid_filter_type')
table_status = sa.Enum(
    'available', 'occupied', 'reserved', 'bill_requested', 'unavailable',
    name='table_status'
)


def upgrade():
    op.create_table('grid_layouts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scope_till_id', sa.Integer(), nullable=True),
        sa.Column('filter_type', grid_filter_type, nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('scope_key', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('columns', sa.Integer(), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('version', sa.String(length=20), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('is_shared', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('columns > 0', name='chk_grid_layout_columns'),
        sa.CheckConstraint(
            "filter_type != 'category' OR category_id IS NOT NULL",
            name='chk_grid_layout_category'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_grid_layouts_scope_till_id', 'grid_layouts', ['scope_till_id'])
    op.create_index('ix_grid_layouts_scope_key', 'grid_layouts', ['scope_key'])
    # At most one default per scope
    op.create_index(
        'uix_grid_layouts_default_scope', 'grid_layouts', ['scope_key'],
        unique=True,
        postgresql_where=sa.text('is_default'),
        sqlite_where=sa.text('is_default = 1')
    )

    op.create_table('rooms',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('tables',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('room_id', sa.String(length=36), nullable=False),
        sa.Column('x', sa.Float(), nullable=False),
        sa.Column('y', sa.Float(), nullable=False),
        sa.Column('width', sa.Float(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('status', table_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('width > 0 AND height > 0', name='chk_table_size'),
        sa.CheckConstraint('x >= 0 AND y >= 0', name='chk_table_position'),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tables_room_id', 'tables', ['room_id'])


def downgrade():
    op.drop_index('ix_tables_room_id', table_name='tables')
    op.drop_table('tables')
    op.drop_table('rooms')
    op.drop_index('uix_grid_layouts_default_scope', table_name='grid_layouts')
    op.drop_index('ix_grid_layouts_scope_key', table_name='grid_layouts')
    op.drop_index('ix_grid_layouts_scope_till_id', table_name='grid_layouts')
    op.drop_table('grid_layouts')

    bind = op.get_bind()
    table_status.drop(bind, checkfirst=True)
    grid_filter_type.drop(bind, checkfirst=True)
