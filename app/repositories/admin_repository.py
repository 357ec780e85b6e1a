"""管理员邮箱白名单数据访问层。"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin_email import AdminEmail


async def is_admin_email(db: AsyncSession, email: str) -> bool:
    """邮箱是否在白名单中（不区分大小写）。"""
    normalized = (email or "").strip().lower()
    if not normalized:
        return False
    result = await db.execute(
        select(AdminEmail.email).where(func.lower(AdminEmail.email) == normalized).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def add_admin_email(db: AsyncSession, email: str) -> AdminEmail:
    """加入白名单，已存在则直接返回。"""
    normalized = email.strip().lower()
    result = await db.execute(select(AdminEmail).where(AdminEmail.email == normalized))
    existing = result.scalars().first()
    if existing:
        return existing
    row = AdminEmail(email=normalized)
    db.add(row)
    await db.commit()
    return row
