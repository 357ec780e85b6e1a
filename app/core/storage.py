from pathlib import Path

from app.core.config import settings


def ensure_storage_dirs() -> None:
    (Path(settings.storage_dir) / settings.theory_bucket).mkdir(parents=True, exist_ok=True)
