"""create school schedule

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ONLY = sa.text("status = 'active'")


def _lifecycle_columns(record_status: sa.Enum) -> list[sa.Column]:
    return [
        sa.Column("status", record_status, nullable=False, server_default="active"),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    user_role = sa.Enum("admin", "teacher", "homeroom_teacher", "student", name="user_role")
    record_status = sa.Enum("active", "archived", name="record_status")
    semester_type = sa.Enum("odd", "even", name="semester_type")

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("official_id", sa.String(length=50), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_name", "users", ["name"])

    op.create_table(
        "academic_years",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_lifecycle_columns(record_status),
        *_timestamps(),
    )
    op.create_index("ix_academic_years_name", "academic_years", ["name"], unique=True)
    op.create_index("ix_academic_years_status", "academic_years", ["status"])

    op.create_table(
        "terms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("type", semester_type, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_lifecycle_columns(record_status),
        *_timestamps(),
    )
    op.create_index("ix_terms_academic_year_id", "terms", ["academic_year_id"])
    op.create_index("ix_terms_is_active", "terms", ["is_active"])
    op.create_index("ix_terms_status", "terms", ["status"])

    op.create_table(
        "subjects",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_lifecycle_columns(record_status),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)
    op.create_index("ix_subjects_status", "subjects", ["status"])

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("term_id", sa.String(length=36), nullable=False),
        sa.Column("homeroom_teacher_id", sa.String(length=36), nullable=True),
        *_lifecycle_columns(record_status),
        *_timestamps(),
    )
    op.create_index("ix_classes_term_id", "classes", ["term_id"])
    op.create_index("ix_classes_status", "classes", ["status"])

    op.create_table(
        "class_enrollments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("class_id", "student_id", name="uq_class_enrollments_class_student"),
    )
    op.create_index("ix_class_enrollments_class_id", "class_enrollments", ["class_id"])
    op.create_index("ix_class_enrollments_student_id", "class_enrollments", ["student_id"])

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("report_name", sa.String(length=200), nullable=True),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("term_id", sa.String(length=36), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=True),
        sa.Column("class_id", sa.String(length=36), nullable=True),
        *_lifecycle_columns(record_status),
        *_timestamps(),
    )
    op.create_index("ix_courses_teacher_id", "courses", ["teacher_id"])
    op.create_index("ix_courses_term_id", "courses", ["term_id"])
    op.create_index("ix_courses_status", "courses", ["status"])

    op.create_table(
        "course_students",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("course_id", "student_id", name="uq_course_students_course_student"),
    )
    op.create_index("ix_course_students_course_id", "course_students", ["course_id"])
    op.create_index("ix_course_students_student_id", "course_students", ["student_id"])

    op.create_table(
        "schedule_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=False),
        sa.Column("term_id", sa.String(length=36), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("period", sa.Integer(), nullable=False),
        *_lifecycle_columns(record_status),
        *_timestamps(),
        sa.CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_slots_day_of_week"),
        sa.CheckConstraint("period >= 0 AND period <= 7", name="ck_schedule_slots_period"),
    )
    op.create_index("ix_schedule_slots_course_id", "schedule_slots", ["course_id"])
    op.create_index("ix_schedule_slots_status", "schedule_slots", ["status"])
    op.create_index(
        "uq_schedule_slots_teacher_cell",
        "schedule_slots",
        ["teacher_id", "term_id", "day_of_week", "period"],
        unique=True,
        sqlite_where=ACTIVE_ONLY,
        postgresql_where=ACTIVE_ONLY,
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("summary", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_index("ix_activity_logs_actor_id", table_name="activity_logs")
    op.drop_table("activity_logs")

    op.drop_index("uq_schedule_slots_teacher_cell", table_name="schedule_slots")
    op.drop_index("ix_schedule_slots_status", table_name="schedule_slots")
    op.drop_index("ix_schedule_slots_course_id", table_name="schedule_slots")
    op.drop_table("schedule_slots")

    op.drop_index("ix_course_students_student_id", table_name="course_students")
    op.drop_index("ix_course_students_course_id", table_name="course_students")
    op.drop_table("course_students")

    op.drop_index("ix_courses_status", table_name="courses")
    op.drop_index("ix_courses_term_id", table_name="courses")
    op.drop_index("ix_courses_teacher_id", table_name="courses")
    op.drop_table("courses")

    op.drop_index("ix_class_enrollments_student_id", table_name="class_enrollments")
    op.drop_index("ix_class_enrollments_class_id", table_name="class_enrollments")
    op.drop_table("class_enrollments")

    op.drop_index("ix_classes_status", table_name="classes")
    op.drop_index("ix_classes_term_id", table_name="classes")
    op.drop_table("classes")

    op.drop_index("ix_subjects_status", table_name="subjects")
    op.drop_index("ix_subjects_code", table_name="subjects")
    op.drop_table("subjects")

    op.drop_index("ix_terms_status", table_name="terms")
    op.drop_index("ix_terms_is_active", table_name="terms")
    op.drop_index("ix_terms_academic_year_id", table_name="terms")
    op.drop_table("terms")

    op.drop_index("ix_academic_years_status", table_name="academic_years")
    op.drop_index("ix_academic_years_name", table_name="academic_years")
    op.drop_table("academic_years")

    op.drop_index("ix_users_name", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ("semester_type", "record_status", "user_role"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
