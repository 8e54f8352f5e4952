"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # One settings row per user; *_api_key columns hold hex(iv || ciphertext)
    op.create_table(
        'user_settings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('preferred_llm', sa.String(20), nullable=False, server_default='ollama'),
        sa.Column('ollama_endpoint', sa.String(500), nullable=True),
        sa.Column('openai_api_key', sa.Text(), nullable=True),
        sa.Column('claude_api_key', sa.Text(), nullable=True),
        sa.Column('gemini_api_key', sa.Text(), nullable=True),
        sa.Column('groq_api_key', sa.Text(), nullable=True),
        sa.Column('cohere_api_key', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "preferred_llm IN ('ollama', 'openai', 'claude', 'gemini', 'groq', 'cohere')",
            name='ck_user_settings_preferred_llm',
        ),
    )

    op.create_table(
        'user_emails_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('raw_thoughts', sa.Text(), nullable=False),
        sa.Column('tone', sa.String(50), nullable=False),
        sa.Column('context_email', sa.Text(), nullable=True),
        sa.Column('generated_email', sa.Text(), nullable=True),
        sa.Column('llm_used', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_user_emails_history_user_created', 'user_emails_history', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_user_emails_history_user_created', table_name='user_emails_history')
    op.drop_table('user_emails_history')
    op.drop_table('user_settings')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
