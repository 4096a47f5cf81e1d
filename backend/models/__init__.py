from models.base import Base
from models.batch import Batch
from models.feedback import Feedback
from models.subject import Subject
from models.timetable_entry import TimetableEntry
from models.user import User

__all__ = [
	"Base",
	"Batch",
	"Feedback",
	"Subject",
	"TimetableEntry",
	"User",
]
