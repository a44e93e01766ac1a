from app.db.base_class import Base

# Import every model so Base.metadata knows all tables (Alembic, create_all)
from app.models.user import User
from app.models.course import Course, Enrollment
from app.models.quiz import Quiz
from app.models.question import Question
from app.models.attempt import QuizAttempt
from app.models.answer import QuizAnswer
from app.models.notification import Notification
