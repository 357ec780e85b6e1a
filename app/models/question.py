from sqlalchemy import Column, ForeignKey, Integer, String, Text

from app.models.base import CreatedAtMixin
from app.core.db import Base


class Question(Base, CreatedAtMixin):
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True)
    page_id = Column(String(36), ForeignKey("quiz_pages.id", ondelete="CASCADE"), nullable=False, index=True)
    # 题干模板，可含填空占位符 [[]]
    title = Column(Text, nullable=False)
    explanation = Column(Text, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
