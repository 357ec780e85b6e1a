"""业务异常。路由层统一转换为 HTTPException。"""


class QuizError(Exception):
    """测验相关异常基类。"""


class QuizValidationError(QuizError, ValueError):
    """写入前的结构校验失败，field 为出错字段路径，如 pages[0].questions[1].options。"""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class StoreError(QuizError):
    """数据库或文件存储失败。保存被整体视为失败。"""
