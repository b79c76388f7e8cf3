"""create otp_codes and users tables

Revision ID: c3d4e5f6a7b8
Revises:
Create Date: 2025-04-17

otp_codes holds hashed one-time passcodes for the signup and reset flows:
  id          : BIGSERIAL PK, assigned in insertion order
  email       : address the code was sent to (case-sensitive)
  code_hash   : hex digest of the code; the code itself is never stored
  purpose     : 'signup' or 'reset'
  expires_at  : row is inert once this has passed
  created_at  : informational

The composite (email, purpose, expires_at DESC) index serves every OTP query:
newest active code, active count, expired cleanup, delete-all for a pair.

users backs the local account provider (bcrypt hash, verified flag).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = 'c3d4e5f6a7b8'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            'created_at',
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'otp_codes',
        sa.Column('id', sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('code_hash', sa.Text(), nullable=False),
        sa.Column('purpose', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            'created_at',
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    )
    op.create_index(
        'idx_otp_codes_lookup',
        'otp_codes',
        ['email', 'purpose', sa.text('expires_at DESC')],
    )


def downgrade() -> None:
    op.drop_index('idx_otp_codes_lookup', table_name='otp_codes')
    op.drop_table('otp_codes')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
