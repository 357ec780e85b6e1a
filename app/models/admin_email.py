from sqlalchemy import Column, String

from app.core.db import Base


class AdminEmail(Base):
    """可进入管理后台的邮箱白名单，只能通过脚本或数据库手工添加。"""

    __tablename__ = "admin_emails"

    email = Column(String(320), primary_key=True)
