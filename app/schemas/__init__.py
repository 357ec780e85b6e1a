"""API 请求/响应 Pydantic 模型。按模块组织，路由从本包或子模块导入。"""
from app.schemas.health import HealthResponse
from app.schemas.quizzes import (
    AdminMeResponse,
    AdminOptionItem,
    AdminPageItem,
    AdminQuestionItem,
    AdminQuizDetailResponse,
    AssetDeletionItem,
    CheckAnswerItem,
    CheckRequest,
    CheckResponse,
    CheckResultItem,
    DeleteTheoryBlockResponse,
    OptionInput,
    OptionItem,
    PageInput,
    PageItem,
    QuestionInput,
    QuestionItem,
    QuizDetailResponse,
    QuizListItem,
    QuizListResponse,
    QuizSaveRequest,
    SaveQuizResponse,
    TheoryBlockInput,
    TheoryBlockItem,
    TheoryImageUploadResponse,
)

__all__ = [
    "HealthResponse",
    "AdminMeResponse",
    "AdminOptionItem",
    "AdminPageItem",
    "AdminQuestionItem",
    "AdminQuizDetailResponse",
    "AssetDeletionItem",
    "CheckAnswerItem",
    "CheckRequest",
    "CheckResponse",
    "CheckResultItem",
    "DeleteTheoryBlockResponse",
    "OptionInput",
    "OptionItem",
    "PageInput",
    "PageItem",
    "QuestionInput",
    "QuestionItem",
    "QuizDetailResponse",
    "QuizListItem",
    "QuizListResponse",
    "QuizSaveRequest",
    "SaveQuizResponse",
    "TheoryBlockInput",
    "TheoryBlockItem",
    "TheoryImageUploadResponse",
]
