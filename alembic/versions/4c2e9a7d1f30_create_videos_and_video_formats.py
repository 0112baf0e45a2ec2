"""create_videos_and_video_formats

Revision ID: 4c2e9a7d1f30
Revises:
Create Date: 2026-10-19 09:12:05.318227

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c2e9a7d1f30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

video_status = sa.Enum('uploaded', 'processing', 'completed', 'failed', name='videostatus')


def upgrade() -> None:
    op.create_table(
        'videos',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('user_email', sa.String(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('status', video_status, nullable=False),
        sa.Column('raw_file_path', sa.String(), nullable=False),
        sa.Column('output_file_path', sa.String(), nullable=True),
        sa.Column('output_format', sa.String(), nullable=True),
        sa.Column('duration', sa.Float(), nullable=True),
        sa.Column('resolution', sa.String(), nullable=True),
        sa.Column('size', sa.BigInteger(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_email', 'filename', name='uq_videos_user_filename'),
    )
    op.create_index('ix_videos_user_email', 'videos', ['user_email'])

    op.create_table(
        'video_formats',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('video_id', sa.String(length=32), nullable=False),
        sa.Column('format', sa.String(length=8), nullable=False),
        sa.Column('file_path', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('video_id', 'format', name='uq_video_formats_video_format'),
    )
    op.create_index('ix_video_formats_video_id', 'video_formats', ['video_id'])


def downgrade() -> None:
    op.drop_index('ix_video_formats_video_id', table_name='video_formats')
    op.drop_table('video_formats')
    op.drop_index('ix_videos_user_email', table_name='videos')
    op.drop_table('videos')
    video_status.drop(op.get_bind(), checkfirst=True)
