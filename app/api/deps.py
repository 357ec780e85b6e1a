"""API 依赖项：身份解析与管理员校验。"""
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.security import decode_identity_email
from app.repositories.admin_repository import is_admin_email

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_email(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """从 Authorization: Bearer <token> 中解析当前登录邮箱。"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="未登录或 token 无效")
    email = decode_identity_email(credentials.credentials)
    if not email:
        raise HTTPException(status_code=401, detail="未登录或 token 无效")
    return email


async def require_admin(
    email: str = Depends(get_current_email),
    db: AsyncSession = Depends(get_db),
) -> str:
    """当前邮箱必须在管理员白名单中，否则 403。所有写操作开始前调用。"""
    if not await is_admin_email(db, email):
        raise HTTPException(status_code=403, detail="unauthorized: 当前账号没有管理后台权限")
    return email
