from app.core.db import Base
from app.models.base import CreatedAtMixin
from app.models.admin_email import AdminEmail
from app.models.quiz import Quiz
from app.models.quiz_page import QuizPage
from app.models.question import Question
from app.models.option import Option
from app.models.theory_block import TheoryBlock

__all__ = [
    "Base",
    "CreatedAtMixin",
    "AdminEmail",
    "Quiz",
    "QuizPage",
    "Question",
    "Option",
    "TheoryBlock",
]
