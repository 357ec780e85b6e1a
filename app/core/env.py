"""项目根目录 .env 加载。须在导入 app.core.config 之前调用；已存在的环境变量不覆盖。"""
import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def load_project_env(env_file: Path | None = None) -> None:
    env_file = env_file or PROJECT_ROOT / ".env"
    if not env_file.is_file():
        return
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key, value = key.strip(), value.strip().strip('"').strip("'")
        if key and os.environ.get(key) is None:
            os.environ[key] = value
