"""测验完整结构（测验 → 页 → 题目 → 选项，以及理论块），读接口与判分共用。"""
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class OptionNode:
    id: str
    text: str
    is_correct: bool
    gap_index: int = 0
    order_index: int = 0


@dataclass
class QuestionNode:
    id: str
    title: str
    explanation: str | None = None
    order_index: int = 0
    options: list[OptionNode] = field(default_factory=list)


@dataclass
class PageNode:
    id: str
    type: str
    title: str | None = None
    order_index: int = 0
    questions: list[QuestionNode] = field(default_factory=list)


@dataclass
class TheoryBlockNode:
    id: str
    type: str
    content: str
    order_index: int = 0


@dataclass
class QuizTree:
    id: str
    title: str
    slug: str
    description: str | None = None
    created_at: datetime | None = None
    pages: list[PageNode] = field(default_factory=list)
    theory_blocks: list[TheoryBlockNode] = field(default_factory=list)

    @property
    def questions(self) -> list[QuestionNode]:
        """扁平视图：按页顺序拼接所有题目。"""
        return [q for page in self.pages for q in page.questions]

    def find_page(self, page_id: str) -> PageNode | None:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None
