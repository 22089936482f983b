"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2024-03-04

Creates all database tables for the Social Reports Platform:
- students: Assisted people with identity and contact fields
- courses: Courses offered by the organization
- enrollments: Student-to-course links with lifecycle status
- attendance_records: Daily presence marks per enrollment
- health_records: Dental, psychological, nutritional and medical records
- social_assistance_records: Social interventions and identified needs

Also creates indexes for common query patterns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('cpf', sa.String(14), nullable=False, unique=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('has_nis', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )

    # ── Courses Table ─────────────────────────────────────────
    op.create_table(
        'courses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('shift', sa.Text(), nullable=True),
        sa.Column('workload_hours', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('available_spots', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )

    # ── Enrollments Table ─────────────────────────────────────
    op.create_table(
        'enrollments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('course_id', sa.String(36), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('enrollment_date', sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_enrollments_student_id', 'enrollments', ['student_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])
    op.create_index('ix_enrollments_status', 'enrollments', ['status'])

    # ── Attendance Records Table ──────────────────────────────
    op.create_table(
        'attendance_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('enrollment_id', sa.String(36), sa.ForeignKey('enrollments.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('absence_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_attendance_records_enrollment_id', 'attendance_records', ['enrollment_id'])
    op.create_index('ix_attendance_records_date', 'attendance_records', ['date'])

    # ── Health Records Table ──────────────────────────────────
    op.create_table(
        'health_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('record_type', sa.Text(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column('professional_name', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        # dental
        sa.Column('dental_history', sa.Text(), nullable=True),
        sa.Column('hygiene_habits', sa.Text(), nullable=True),
        sa.Column('previous_treatments', sa.Text(), nullable=True),
        # psychological
        sa.Column('emotional_history', sa.Text(), nullable=True),
        sa.Column('behavior_assessment', sa.Text(), nullable=True),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('referrals', sa.Text(), nullable=True),
        sa.Column('observations', sa.Text(), nullable=True),
        # nutritional
        sa.Column('nutritional_assessment', sa.Text(), nullable=True),
        sa.Column('eating_habits', sa.Text(), nullable=True),
        sa.Column('bmi', sa.Float(), nullable=True),
        sa.Column('suggested_meal_plan', sa.Text(), nullable=True),
        # medical
        sa.Column('clinical_history', sa.Text(), nullable=True),
        sa.Column('allergies', sa.JSON(), nullable=True),
        sa.Column('medications', sa.JSON(), nullable=True),
        sa.Column('preexisting_conditions', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_health_records_student_id', 'health_records', ['student_id'])
    op.create_index('ix_health_records_record_type', 'health_records', ['record_type'])
    op.create_index('ix_health_records_date', 'health_records', ['date'])

    # ── Social Assistance Records Table ───────────────────────
    op.create_table(
        'social_assistance_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column('identified_needs', sa.JSON(), nullable=False),
        sa.Column('referrals', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_social_assistance_records_student_id', 'social_assistance_records', ['student_id'])
    op.create_index('ix_social_assistance_records_date', 'social_assistance_records', ['date'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_social_assistance_records_date', table_name='social_assistance_records')
    op.drop_index('ix_social_assistance_records_student_id', table_name='social_assistance_records')
    op.drop_table('social_assistance_records')
    op.drop_index('ix_health_records_date', table_name='health_records')
    op.drop_index('ix_health_records_record_type', table_name='health_records')
    op.drop_index('ix_health_records_student_id', table_name='health_records')
    op.drop_table('health_records')
    op.drop_index('ix_attendance_records_date', table_name='attendance_records')
    op.drop_index('ix_attendance_records_enrollment_id', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index('ix_enrollments_status', table_name='enrollments')
    op.drop_index('ix_enrollments_course_id', table_name='enrollments')
    op.drop_index('ix_enrollments_student_id', table_name='enrollments')
    op.drop_table('enrollments')
    op.drop_table('courses')
    op.drop_table('students')
