from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from app.core.db import Base


class Option(Base):
    __tablename__ = "options"

    id = Column(String(36), primary_key=True)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    # 填空序号（从 0 开始）。单空题与选择题恒为 0
    gap_index = Column(Integer, nullable=False, default=0, server_default="0")
    order_index = Column(Integer, nullable=False, default=0)
