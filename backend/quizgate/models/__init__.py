from quizgate.models.user import User
from quizgate.models.quiz import Quiz
from quizgate.models.question import Question
from quizgate.models.attempt import QuizAttempt
from quizgate.models.student_answer import StudentAnswer

__all__ = [
    "User",
    "Quiz",
    "Question",
    "QuizAttempt",
    "StudentAnswer",
]
