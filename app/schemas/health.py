"""健康检查响应模型。"""
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field("ok", description="服务状态")
    environment: str = Field(..., description="运行环境，如 development / production")
    database: str = Field(..., description="数据库连通性：ok 或 error")
