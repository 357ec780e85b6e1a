import logging
import time
from contextlib import asynccontextmanager

from app.core.env import load_project_env

# config 在导入时读取环境变量，.env 必须先加载
load_project_env()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.api.router import api_router
from app.core.config import settings
from app.core.db import engine
from app.core.storage import ensure_storage_dirs

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        addr = request.client.host if request.client else "-"
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, '%s - "%s %s" %d (%.0fms)', addr, request.method, request.url.path, response.status_code, elapsed)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_storage_dirs()
    logger.info("quiz backend 启动 environment=%s storage=%s", settings.environment, settings.storage_dir)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="Quiz Pages Backend", lifespan=lifespan)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.api_prefix)
    # 理论图片公开访问：/storage/<bucket>/<path>
    app.mount("/storage", StaticFiles(directory=settings.storage_dir, check_dir=False), name="storage")
    return app


app = create_app()
