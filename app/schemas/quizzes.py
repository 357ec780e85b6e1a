"""测验相关请求/响应模型：保存（创建/编辑）、读取、判分。"""
from typing import Literal

from pydantic import BaseModel, Field, field_validator

PageType = Literal["single", "multiple", "input", "select_gaps"]
BlockType = Literal["text", "image"]


# ----- 保存（管理后台提交的完整结构）-----
class OptionInput(BaseModel):
    id: str | None = Field(None, description="已有选项的 ID，新选项留空")
    text: str = Field("", description="选项文本；填空题为可接受答案")
    is_correct: bool = Field(False, alias="isCorrect")
    gap_index: int = Field(0, ge=0, alias="gapIndex", description="所属空序号，从 0 开始")

    model_config = {"populate_by_name": True}

    @field_validator("gap_index", mode="before")
    @classmethod
    def _gap_index_default(cls, v):
        # 旧客户端传 null 表示唯一的空
        return 0 if v is None else v


class QuestionInput(BaseModel):
    id: str | None = None
    title: str = Field("", description="题干，[[]] 为填空占位符")
    explanation: str | None = None
    order_index: int = Field(0, alias="orderIndex")
    options: list[OptionInput] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class PageInput(BaseModel):
    id: str | None = None
    type: PageType
    title: str | None = None
    order_index: int = Field(0, alias="orderIndex")
    questions: list[QuestionInput] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class TheoryBlockInput(BaseModel):
    id: str | None = None
    type: BlockType
    content: str = Field("", description="文本内容或图片公开 URL")
    order_index: int = Field(0, alias="orderIndex")

    model_config = {"populate_by_name": True}


class QuizSaveRequest(BaseModel):
    title: str = ""
    description: str | None = None
    slug: str = ""
    pages: list[PageInput] = Field(default_factory=list)
    theory_blocks: list[TheoryBlockInput] = Field(default_factory=list, alias="theoryBlocks")

    model_config = {"populate_by_name": True}


class AssetDeletionItem(BaseModel):
    path: str
    ok: bool
    error: str | None = None


class SaveQuizResponse(BaseModel):
    quizId: str
    slug: str
    inserted: dict[str, int] = Field(default_factory=dict, description="各层新增行数")
    updated: dict[str, int] = Field(default_factory=dict, description="各层更新行数")
    deleted: dict[str, int] = Field(default_factory=dict, description="各层删除行数")
    assetDeletions: list[AssetDeletionItem] = Field(default_factory=list)


# ----- 列表 -----
class QuizListItem(BaseModel):
    quizId: str
    title: str
    description: str | None = None
    slug: str
    createdAt: str


class QuizListResponse(BaseModel):
    items: list[QuizListItem] = Field(default_factory=list)
    total: int = 0


# ----- 作答页（不含正确答案）-----
class OptionItem(BaseModel):
    optionId: str
    text: str
    gapIndex: int = 0


class QuestionItem(BaseModel):
    questionId: str
    title: str
    segments: list[str] = Field(default_factory=list, description="按 [[]] 切分的题干片段")
    gapCount: int = 1
    options: list[OptionItem] = Field(default_factory=list, description="填空输入题不下发选项")


class PageItem(BaseModel):
    pageId: str
    type: PageType
    title: str | None = None
    orderIndex: int = 0
    questions: list[QuestionItem] = Field(default_factory=list)


class TheoryBlockItem(BaseModel):
    blockId: str
    type: BlockType
    content: str
    orderIndex: int = 0


class QuizDetailResponse(BaseModel):
    quizId: str
    title: str
    description: str | None = None
    slug: str
    createdAt: str
    pages: list[PageItem] = Field(default_factory=list)
    theoryBlocks: list[TheoryBlockItem] = Field(default_factory=list)


# ----- 管理后台编辑页（含正确答案与解析）-----
class AdminOptionItem(OptionItem):
    isCorrect: bool


class AdminQuestionItem(BaseModel):
    questionId: str
    title: str
    explanation: str | None = None
    orderIndex: int = 0
    gapCount: int = 1
    options: list[AdminOptionItem] = Field(default_factory=list)


class AdminPageItem(BaseModel):
    pageId: str
    type: PageType
    title: str | None = None
    orderIndex: int = 0
    questions: list[AdminQuestionItem] = Field(default_factory=list)


class AdminQuizDetailResponse(BaseModel):
    quizId: str
    title: str
    description: str | None = None
    slug: str
    createdAt: str
    pages: list[AdminPageItem] = Field(default_factory=list)
    theoryBlocks: list[TheoryBlockItem] = Field(default_factory=list)


# ----- 判分 -----
class CheckAnswerItem(BaseModel):
    questionId: str
    answer: str | list[str] | dict[int, str] | None = None


class CheckRequest(BaseModel):
    answers: list[CheckAnswerItem] = Field(default_factory=list)


class CheckResultItem(BaseModel):
    questionId: str
    isCorrect: bool
    gaps: list[bool] = Field(default_factory=list, description="每个空的对错")
    correctOptionIds: list[str] = Field(default_factory=list)
    explanation: str | None = None


class CheckResponse(BaseModel):
    correct: int
    total: int
    results: list[CheckResultItem] = Field(default_factory=list)


# ----- 其他 -----
class AdminMeResponse(BaseModel):
    email: str
    isAdmin: bool


class TheoryImageUploadResponse(BaseModel):
    path: str
    url: str


class DeleteTheoryBlockResponse(BaseModel):
    blockId: str
    rowDeleted: bool
    rowError: str | None = None
    asset: AssetDeletionItem | None = None
