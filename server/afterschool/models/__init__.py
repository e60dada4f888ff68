from .user import User  # noqa: F401
from .staff import StaffProfile  # noqa: F401
from .student import Student  # noqa: F401
from .behavior import BehaviorIncident, BehaviorNote, TierTransition  # noqa: F401
from .homework import HomeworkAssignment  # noqa: F401
