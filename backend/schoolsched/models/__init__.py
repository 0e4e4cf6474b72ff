from schoolsched.models.activity_log import ActivityLog  # noqa: F401
from schoolsched.models.room import Room  # noqa: F401
from schoolsched.models.schedule import ClassSchedule, ScheduleStatus  # noqa: F401
from schoolsched.models.schedule_slot import ScheduleSlot  # noqa: F401
from schoolsched.models.school_class import SchoolClass  # noqa: F401
from schoolsched.models.subject import Subject  # noqa: F401
from schoolsched.models.teacher import Teacher  # noqa: F401
from schoolsched.models.timeslot import ClassTimeslot, TimeslotType, Weekday  # noqa: F401
from schoolsched.models.user import User, UserRole  # noqa: F401
