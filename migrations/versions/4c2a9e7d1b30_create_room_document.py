"""create room_document table

Revision ID: 4c2a9e7d1b30
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c2a9e7d1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'room_document' in set(insp.get_table_names()):
        return
    op.create_table(
        'room_document',
        sa.Column('path', sa.String(length=255), primary_key=True),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=False),
    )
    op.create_index('ix_room_document_updated_at', 'room_document', ['updated_at'])


def downgrade():
    op.drop_index('ix_room_document_updated_at', table_name='room_document')
    op.drop_table('room_document')
