"""ORM models exposed for metadata discovery."""
from lifeos.db.models.action_log import ActionLog
from lifeos.db.models.generated_plan import GeneratedPlan, PlanSlot
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.db.models.task import Task
from lifeos.db.models.user import User
from lifeos.db.models.user_preferences import UserPreferences

__all__ = [
    "ActionLog",
    "GeneratedPlan",
    "PlanSlot",
    "RoutineInstance",
    "RoutineTemplate",
    "Task",
    "User",
    "UserPreferences",
]
