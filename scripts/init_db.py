"""建表并维护管理员邮箱白名单。
与应用使用同一 DATABASE_URL（会从项目根目录 .env 加载环境变量）。
使用方式（在项目根目录）：
  python scripts/init_db.py                                  # 仅建表（已存在的表跳过）
  python scripts/init_db.py --admin-email admin@example.com  # 建表并加入管理员邮箱，可重复传入
"""
import argparse
import asyncio
import os
import sys

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)
os.chdir(_project_root)

from app.core.env import load_project_env

load_project_env()

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.models import Base
from app.repositories.admin_repository import add_admin_email


def _redact_url(url: str) -> str:
    if "@" in url and "//" in url:
        pre, _, rest = url.partition("//")
        if "@" in rest:
            user_part, _, host_part = rest.rpartition("@")
            if ":" in user_part:
                user = user_part.split(":")[0]
                return f"{pre}//{user}:****@{host_part}"
    return url


async def run(admin_emails: list[str]) -> None:
    print(f"Using DB: {_redact_url(settings.database_url)}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("OK: create tables")
    async with SessionLocal() as db:
        for email in admin_emails:
            if not email.strip():
                continue
            row = await add_admin_email(db, email)
            print(f"OK: admin email {row.email}")
    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="建表并加入管理员邮箱")
    parser.add_argument("--admin-email", action="append", default=[], help="管理员邮箱，可重复传入")
    args = parser.parse_args()
    asyncio.run(run(args.admin_email))


if __name__ == "__main__":
    main()
