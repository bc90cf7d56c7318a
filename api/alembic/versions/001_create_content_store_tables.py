"""create_content_store_tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:12:41.204113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('content_fields'):
        op.create_table('content_fields',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('bundle', sa.String(length=128), nullable=False),
        sa.Column('field_name', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('cardinality', sa.Integer(), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('displays', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entity_type', 'bundle', 'field_name', name='uq_content_fields_scope_name')
        )
        op.create_index(op.f('ix_content_fields_id'), 'content_fields', ['id'], unique=False)
        op.create_index(op.f('ix_content_fields_entity_type'), 'content_fields', ['entity_type'], unique=False)
        op.create_index(op.f('ix_content_fields_bundle'), 'content_fields', ['bundle'], unique=False)

    if not inspector.has_table('content_entities'):
        op.create_table('content_entities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('bundle', sa.String(length=128), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('status', sa.Boolean(), nullable=False),
        sa.Column('created', sa.BigInteger(), nullable=True),
        sa.Column('changed', sa.BigInteger(), nullable=True),
        sa.Column('field_values', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_content_entities_id'), 'content_entities', ['id'], unique=False)
        op.create_index(op.f('ix_content_entities_entity_type'), 'content_entities', ['entity_type'], unique=False)
        op.create_index(op.f('ix_content_entities_bundle'), 'content_entities', ['bundle'], unique=False)

    if not inspector.has_table('content_field_index'):
        op.create_table('content_field_index',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('bundle', sa.String(length=128), nullable=False),
        sa.Column('field_name', sa.String(length=64), nullable=False),
        sa.Column('value', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['entity_id'], ['content_entities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_content_field_index_entity_id'), 'content_field_index', ['entity_id'], unique=False)
        op.create_index(
            'ix_content_field_index_lookup',
            'content_field_index',
            ['entity_type', 'field_name', 'value'],
            unique=False,
        )


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in ('content_field_index', 'content_entities', 'content_fields'):
        if inspector.has_table(table):
            op.drop_table(table)
