"""initial tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    # enums
    assignment_status = sa.Enum('active', 'closed', name='assignment_status')
    work_status = sa.Enum('draft', 'final', name='work_status')

    op.create_table('teachers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('failed_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_until', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('active_sessions_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_teachers_username', 'teachers', ['username'], unique=True)

    op.create_table('assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('assignment_code', sa.String(length=6), nullable=False),
        sa.Column('status', assignment_status, nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('activated_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('student_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_students', sa.Integer(), nullable=False, server_default='30'),
    )
    op.create_index('ix_assignments_assignment_code', 'assignments', ['assignment_code'], unique=True)
    op.create_index('ix_assignments_teacher_id', 'assignments', ['teacher_id'])
    op.create_index('ix_assignments_teacher_status', 'assignments', ['teacher_id', 'status'])

    op.create_table('student_work',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('assignment_id', sa.Integer(), sa.ForeignKey('assignments.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_name', sa.String(length=50), nullable=False),
        sa.Column('student_key', sa.String(length=50), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', work_status, nullable=False),
        sa.Column('last_saved_at', sa.DateTime(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('session_token', sa.String(length=128), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('assignment_id', 'student_key', name='uq_student_work_assignment_student'),
    )
    op.create_index('ix_student_work_assignment_status', 'student_work', ['assignment_id', 'status'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_teacher_id', 'audit_logs', ['teacher_id'])

def downgrade():
    op.drop_index('ix_audit_logs_teacher_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_student_work_assignment_status', table_name='student_work')
    op.drop_table('student_work')
    op.drop_index('ix_assignments_teacher_status', table_name='assignments')
    op.drop_index('ix_assignments_teacher_id', table_name='assignments')
    op.drop_index('ix_assignments_assignment_code', table_name='assignments')
    op.drop_table('assignments')
    op.drop_index('ix_teachers_username', table_name='teachers')
    op.drop_table('teachers')

    bind = op.get_bind()
    if bind.dialect.name != "sqlite":
        sa.Enum(name='work_status').drop(bind, checkfirst=True)
        sa.Enum(name='assignment_status').drop(bind, checkfirst=True)
