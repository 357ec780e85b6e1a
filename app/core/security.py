"""身份令牌校验：外部身份服务签发的 JWT，取其中的 email 作为管理员判定依据。"""
from datetime import datetime, timezone, timedelta

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings


def create_identity_token(email: str, expires_delta: timedelta | None = None) -> str:
    """签发带 email 声明的令牌。仅用于本地脚本与测试，线上令牌由身份服务签发。"""
    if expires_delta is None:
        expires_delta = timedelta(hours=1)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": email, "email": email, "exp": expire}
    if settings.auth_jwt_audience:
        to_encode["aud"] = settings.auth_jwt_audience
    return jwt.encode(to_encode, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


def decode_identity_email(token: str) -> str | None:
    """解码 JWT，成功返回小写 email，失败或缺少 email 返回 None。"""
    options = {}
    kwargs = {}
    if settings.auth_jwt_audience:
        kwargs["audience"] = settings.auth_jwt_audience
    else:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            options=options,
            **kwargs,
        )
    except PyJWTError:
        return None
    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        return None
    return email.strip().lower()
