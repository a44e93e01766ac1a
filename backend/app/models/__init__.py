from app.models.user import User
from app.models.course import Course, Enrollment
from app.models.quiz import Quiz, ShowResultsPolicy
from app.models.question import Question, QuestionType
from app.models.attempt import AttemptStatus, QuizAttempt
from app.models.answer import QuizAnswer
from app.models.notification import Notification, NotificationType

__all__ = [
    "User",
    "Course",
    "Enrollment",
    "Quiz",
    "ShowResultsPolicy",
    "Question",
    "QuestionType",
    "QuizAttempt",
    "AttemptStatus",
    "QuizAnswer",
    "Notification",
    "NotificationType",
]
