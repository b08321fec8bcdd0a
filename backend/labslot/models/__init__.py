from labslot.models.activity_log import ActivityLog  # noqa: F401
from labslot.models.calendar_event import CalendarEventRecord, EventStateColumn  # noqa: F401
from labslot.models.room import Room  # noqa: F401
