from quizgate.db.base_class import Base

# Import every model so Base.metadata knows all tables (Alembic autogenerate, create_all)
from quizgate.models.user import User
from quizgate.models.quiz import Quiz
from quizgate.models.question import Question
from quizgate.models.attempt import QuizAttempt
from quizgate.models.student_answer import StudentAnswer
