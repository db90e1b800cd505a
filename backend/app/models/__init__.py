from app.models.academic_calendar import AcademicYear, SemesterType, Term  # noqa: F401
from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.course import Course, CourseStudent  # noqa: F401
from app.models.lifecycle import LifecycleMixin, RecordStatus  # noqa: F401
from app.models.schedule_slot import ScheduleSlot  # noqa: F401
from app.models.school_class import ClassEnrollment, SchoolClass  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.user import TEACHING_ROLES, User, UserRole  # noqa: F401
