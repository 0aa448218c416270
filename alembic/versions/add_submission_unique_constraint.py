"""Add unique constraint on student_submissions (assessment_session_id, student_id)

Revision ID: submission_unique_001
Revises:
Create Date: 2026-10-17

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = 'submission_unique_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # One submission per student per assessment session.
    # Duplicates left by concurrent submits must be removed before upgrading.
    op.create_unique_constraint(
        'uq_student_submission_session_student',
        'student_submissions',
        ['assessment_session_id', 'student_id']
    )


def downgrade():
    op.drop_constraint(
        'uq_student_submission_session_student',
        'student_submissions',
        type_='unique'
    )
