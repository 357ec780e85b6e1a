from sqlalchemy import Column, String, Text

from app.models.base import CreatedAtMixin
from app.core.db import Base

SLUG_MAX_LENGTH = 200


class Quiz(Base, CreatedAtMixin):
    __tablename__ = "quizzes"

    id = Column(String(36), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    slug = Column(String(SLUG_MAX_LENGTH), unique=True, nullable=False)
