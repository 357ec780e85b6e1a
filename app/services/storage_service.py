"""理论图片存储：按路径寻址，上传、生成公开 URL、由公开 URL 反解路径、按路径删除。"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlsplit

import aiofiles

from app.core.config import settings
from app.core.storage import ensure_storage_dirs

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"}


@dataclass
class AssetDeletion:
    path: str
    ok: bool
    error: str | None = None


def _bucket_root() -> Path:
    return Path(settings.storage_dir) / settings.theory_bucket


def _safe_object_path(path: str) -> Path:
    """对象路径转为磁盘路径，拒绝越出 bucket 目录的路径。"""
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise ValueError(f"非法的存储路径: {path}")
    return _bucket_root().joinpath(*relative.parts)


def public_url_for(path: str) -> str:
    base = settings.public_storage_url.rstrip("/")
    return f"{base}/{settings.theory_bucket}/{path}"


def storage_path_from_public_url(url: str | None) -> str | None:
    """由公开 URL 反解对象路径；不是本存储签发的 URL 返回 None。"""
    if not url:
        return None
    base = urlsplit(settings.public_storage_url.rstrip("/"))
    target = urlsplit(url.strip())
    if (target.scheme, target.netloc) != (base.scheme, base.netloc):
        return None
    prefix = f"{base.path.rstrip('/')}/{settings.theory_bucket}/"
    if not target.path.startswith(prefix):
        return None
    path = unquote(target.path[len(prefix):])
    return path or None


def _object_name(filename: str) -> str:
    name = Path(filename or "").name
    suffix = Path(name).suffix.lower()
    if suffix not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError(f"不支持的图片格式，允许：{', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}")
    return f"{uuid.uuid4().hex}{suffix}"


async def upload_theory_image(quiz_id: str, filename: str, data: bytes) -> tuple[str, str]:
    """保存图片到 <quiz_id>/<随机名>，返回 (对象路径, 公开 URL)。"""
    path = f"{quiz_id}/{_object_name(filename)}"
    target = _safe_object_path(path)
    await asyncio.to_thread(ensure_storage_dirs)
    await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
    async with aiofiles.open(target, "wb") as f:
        await f.write(data)
    logger.info("[storage] 已上传理论图片 path=%s size=%d", path, len(data))
    return path, public_url_for(path)


def _delete_object_sync(path: str) -> None:
    _safe_object_path(path).unlink(missing_ok=True)


async def delete_asset(path: str) -> AssetDeletion:
    """删除对象，失败不抛出，结果单独返回。对象本就不存在视为成功。"""
    try:
        await asyncio.to_thread(_delete_object_sync, path)
    except (OSError, ValueError) as e:
        logger.warning("[storage] 删除图片失败 path=%s: %s", path, e)
        return AssetDeletion(path=path, ok=False, error=str(e))
    return AssetDeletion(path=path, ok=True)


async def delete_assets_for_urls(urls: list[str]) -> list[AssetDeletion]:
    """按公开 URL 逐个删除图片，外部 URL 跳过。"""
    out: list[AssetDeletion] = []
    for url in urls:
        path = storage_path_from_public_url(url)
        if path is None:
            logger.info("[storage] 非本存储 URL，跳过删除 url=%s", url)
            continue
        out.append(await delete_asset(path))
    return out
