from sqlalchemy import Column, ForeignKey, Integer, String, Text

from app.core.db import Base

CHOICE_PAGE_TYPES = ("single", "multiple")
GAP_PAGE_TYPES = ("input", "select_gaps")


class QuizPage(Base):
    __tablename__ = "quiz_pages"

    id = Column(String(36), primary_key=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    # single / multiple / input / select_gaps
    type = Column(String(20), nullable=False)
    title = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
