from sqlalchemy import Column, ForeignKey, Integer, String, Text

from app.models.base import CreatedAtMixin
from app.core.db import Base


class TheoryBlock(Base, CreatedAtMixin):
    __tablename__ = "theory_blocks"

    id = Column(String(36), primary_key=True)
    quiz_id = Column(String(36), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    # text：正文；image：图片公开 URL
    type = Column(String(10), nullable=False)
    content = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
