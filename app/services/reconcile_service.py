"""编辑保存时的同步：把提交的完整结构与库中现有行逐层比对。

每一层（测验下的页、页下的题目、题目下的选项、测验下的理论块）使用同一套规则：
1. 查出父节点下现有子行 ID；
2. 按提交顺序处理：带已有 ID 的更新并保留，其余新增（生成新 ID）并保留；
3. 未被保留的现有 ID 删除；
4. 对保留/新增的行递归同步其子层。
删除父行时子行由外键级联删除。本模块只 flush，不 commit，由调用方控制事务。
"""
import logging
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.option import Option
from app.models.question import Question
from app.models.quiz_page import QuizPage
from app.models.theory_block import TheoryBlock
from app.repositories.quiz_repository import delete_rows_by_ids, get_child_ids, get_rows_by_ids
from app.services.gap_parser import effective_gap_count

logger = logging.getLogger(__name__)


@dataclass
class ChildPlan:
    # 按展示顺序排列的 (现有 ID 或 None, 提交项)；None 表示新增
    kept: list[tuple[str | None, Any]] = field(default_factory=list)
    deletes: list[str] = field(default_factory=list)

    @property
    def updates(self) -> list[str]:
        return [row_id for row_id, _ in self.kept if row_id is not None]

    @property
    def inserts(self) -> list[Any]:
        return [item for row_id, item in self.kept if row_id is None]


def plan_children(desired: Sequence[Any], existing_ids: Sequence[str]) -> ChildPlan:
    """
    计算一层子节点的新增/更新/删除。desired 先按 (order_index, 提交位置) 排序；
    同一个已有 ID 出现多次时只有第一次视为更新，其余按新增处理。
    """
    existing = set(existing_ids)
    ordered = [item for _, item in sorted(enumerate(desired), key=lambda p: (getattr(p[1], "order_index", 0) or 0, p[0]))]
    plan = ChildPlan()
    claimed: set[str] = set()
    for item in ordered:
        item_id = getattr(item, "id", None)
        if item_id and item_id in existing and item_id not in claimed:
            claimed.add(item_id)
            plan.kept.append((item_id, item))
        else:
            plan.kept.append((None, item))
    plan.deletes = [row_id for row_id in existing_ids if row_id not in claimed]
    return plan


@dataclass
class SyncReport:
    inserted: Counter = field(default_factory=Counter)
    updated: Counter = field(default_factory=Counter)
    deleted: Counter = field(default_factory=Counter)
    # 被删除的图片理论块的公开 URL，commit 之后再删文件
    removed_image_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EntitySpec:
    """一层子节点的同步方式：表、父外键列、字段取值、子层。"""

    name: str
    model: type
    parent_attr: str
    values: Callable[[Any, int, dict], dict]
    children: Callable[[Any, dict], list[tuple["EntitySpec", list, dict]]] = lambda item, ctx: []
    before_delete: Callable[["QuizReconciler", list[str]], Awaitable[None]] | None = None


def options_to_sync(page_type: str, question: Any) -> list[Any]:
    """填空输入题丢弃空白答案；其余题型原样同步。"""
    if page_type == "input":
        return [o for o in question.options if (o.text or "").strip()]
    return list(question.options)


def _page_values(page: Any, position: int, ctx: dict) -> dict:
    return {"type": page.type, "title": (page.title or "").strip() or None, "order_index": position}


def _question_values(question: Any, position: int, ctx: dict) -> dict:
    return {
        "title": question.title,
        "explanation": (question.explanation or "").strip() or None,
        "order_index": position,
    }


def _option_values(option: Any, position: int, ctx: dict) -> dict:
    page_type = ctx["page_type"]
    multi_gap = ctx["gap_count"] > 1
    if page_type == "input":
        # 输入题的选项即可接受答案，一律视为正确
        return {
            "text": option.text.strip(),
            "is_correct": True,
            "gap_index": option.gap_index if multi_gap else 0,
            "order_index": position,
        }
    if page_type == "select_gaps":
        return {
            "text": option.text,
            "is_correct": bool(option.is_correct),
            "gap_index": option.gap_index if multi_gap else 0,
            "order_index": position,
        }
    return {"text": option.text, "is_correct": bool(option.is_correct), "gap_index": 0, "order_index": position}


def _theory_block_values(block: Any, position: int, ctx: dict) -> dict:
    content = block.content.strip() if block.type == "image" else block.content
    return {"type": block.type, "content": content, "order_index": position}


async def _collect_image_urls(reconciler: "QuizReconciler", block_ids: list[str]) -> None:
    rows = await get_rows_by_ids(reconciler.db, TheoryBlock, block_ids)
    reconciler.report.removed_image_urls.extend(r.content for r in rows if r.type == "image")


OPTION_SPEC = EntitySpec(name="options", model=Option, parent_attr="question_id", values=_option_values)

QUESTION_SPEC = EntitySpec(
    name="questions",
    model=Question,
    parent_attr="page_id",
    values=_question_values,
    children=lambda q, ctx: [
        (
            OPTION_SPEC,
            options_to_sync(ctx["page_type"], q),
            {**ctx, "gap_count": effective_gap_count(q.title)},
        )
    ],
)

PAGE_SPEC = EntitySpec(
    name="pages",
    model=QuizPage,
    parent_attr="quiz_id",
    values=_page_values,
    children=lambda p, ctx: [(QUESTION_SPEC, list(p.questions), {**ctx, "page_type": p.type})],
)

THEORY_BLOCK_SPEC = EntitySpec(
    name="theory_blocks",
    model=TheoryBlock,
    parent_attr="quiz_id",
    values=_theory_block_values,
    before_delete=_collect_image_urls,
)


class QuizReconciler:
    """把一棵提交的测验结构同步到数据库（单个会话内，不提交）。"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.report = SyncReport()

    async def sync_children(
        self,
        spec: EntitySpec,
        parent_id: str,
        desired: Sequence[Any],
        ctx: dict | None = None,
    ) -> list[str]:
        """同步一层子节点并递归其子层，返回按顺序保留的行 ID。"""
        ctx = ctx or {}
        parent_column = getattr(spec.model, spec.parent_attr)
        existing_ids = await get_child_ids(self.db, spec.model, parent_column, parent_id)
        plan = plan_children(desired, existing_ids)
        rows_by_id = {row.id: row for row in await get_rows_by_ids(self.db, spec.model, plan.updates)}

        kept_ids: list[str] = []
        for position, (row_id, item) in enumerate(plan.kept):
            values = spec.values(item, position, ctx)
            if row_id is not None:
                row = rows_by_id[row_id]
                for key, value in values.items():
                    setattr(row, key, value)
                self.report.updated[spec.name] += 1
            else:
                row_id = str(uuid.uuid4())
                self.db.add(spec.model(id=row_id, **{spec.parent_attr: parent_id}, **values))
                self.report.inserted[spec.name] += 1
            kept_ids.append(row_id)
        await self.db.flush()

        if plan.deletes:
            if spec.before_delete is not None:
                await spec.before_delete(self, plan.deletes)
            await delete_rows_by_ids(self.db, spec.model, plan.deletes)
            self.report.deleted[spec.name] += len(plan.deletes)

        for row_id, (_, item) in zip(kept_ids, plan.kept):
            for child_spec, child_items, child_ctx in spec.children(item, ctx):
                await self.sync_children(child_spec, row_id, child_items, child_ctx)
        return kept_ids

    async def sync_quiz(self, quiz_id: str, pages: Sequence[Any], theory_blocks: Sequence[Any]) -> SyncReport:
        """同步测验下的页（递归到选项）与理论块。"""
        await self.sync_children(PAGE_SPEC, quiz_id, pages)
        await self.sync_children(THEORY_BLOCK_SPEC, quiz_id, theory_blocks)
        logger.info(
            "[reconcile] quiz_id=%s inserted=%s updated=%s deleted=%s",
            quiz_id,
            dict(self.report.inserted),
            dict(self.report.updated),
            dict(self.report.deleted),
        )
        return self.report
