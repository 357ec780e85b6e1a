"""测验的创建、编辑、删除：写入前校验，整棵树在一个事务内同步，提交后再清理图片文件。"""
import logging
import re
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import QuizValidationError, StoreError
from app.models.quiz import SLUG_MAX_LENGTH, Quiz
from app.models.quiz_page import CHOICE_PAGE_TYPES
from app.repositories.quiz_repository import (
    delete_quiz_by_id,
    delete_theory_block_by_id,
    get_quiz_by_id,
    get_quiz_by_slug,
    get_theory_block_by_id,
    get_theory_blocks_by_quiz_id,
    slug_exists,
)
from app.schemas.quizzes import QuestionInput, QuizSaveRequest
from app.services.gap_parser import effective_gap_count
from app.services.reconcile_service import QuizReconciler, SyncReport
from app.services.storage_service import (
    AssetDeletion,
    delete_asset,
    delete_assets_for_urls,
    storage_path_from_public_url,
)

logger = logging.getLogger(__name__)

SLUG_RE = re.compile(r"^[A-Za-z0-9_-]+$")
# 冲突重试会追加 -N 后缀，留出余量
SLUG_INPUT_MAX_LENGTH = SLUG_MAX_LENGTH - 10


@dataclass
class SaveResult:
    quiz_id: str
    slug: str
    report: SyncReport
    asset_deletions: list[AssetDeletion] = field(default_factory=list)


@dataclass
class TheoryBlockDeletion:
    block_id: str
    row_deleted: bool
    row_error: str | None = None
    asset: AssetDeletion | None = None


def _validate_question_options(page_type: str, question: QuestionInput, field_path: str) -> None:
    options = question.options
    if page_type in CHOICE_PAGE_TYPES:
        if not options:
            raise QuizValidationError(f"{field_path}.options", "选择题每题至少需要一个选项")
        for oi, o in enumerate(options):
            if not (o.text or "").strip():
                raise QuizValidationError(f"{field_path}.options[{oi}].text", "选项内容不能为空")
        return

    gap_count = effective_gap_count(question.title)
    for gap in range(gap_count):
        in_gap = [
            o for o in options
            if (o.text or "").strip() and (gap_count == 1 or o.gap_index == gap)
        ]
        if page_type == "input":
            if not in_gap:
                raise QuizValidationError(f"{field_path}.options", f"第 {gap + 1} 个空至少需要一个可接受答案")
        else:
            if not in_gap:
                raise QuizValidationError(f"{field_path}.options", f"第 {gap + 1} 个空至少需要一个选项")
            if not any(o.is_correct for o in in_gap):
                raise QuizValidationError(f"{field_path}.options", f"第 {gap + 1} 个空至少需要一个正确选项")


def validate_quiz_tree(data: QuizSaveRequest) -> None:
    """写入前的结构校验，不通过抛 QuizValidationError，不产生任何写入。"""
    if not data.title.strip():
        raise QuizValidationError("title", "标题不能为空")
    slug = data.slug.strip()
    if not slug:
        raise QuizValidationError("slug", "slug 不能为空")
    if not SLUG_RE.match(slug):
        raise QuizValidationError("slug", "slug 只能包含字母、数字、- 和 _")
    if len(slug) > SLUG_INPUT_MAX_LENGTH:
        raise QuizValidationError("slug", f"slug 不能超过 {SLUG_INPUT_MAX_LENGTH} 个字符")
    if not data.pages:
        raise QuizValidationError("pages", "至少需要一页")
    for pi, page in enumerate(data.pages):
        if not page.questions:
            raise QuizValidationError(f"pages[{pi}].questions", "每页至少需要一道题")
        for qi, question in enumerate(page.questions):
            field_path = f"pages[{pi}].questions[{qi}]"
            if not question.title.strip():
                raise QuizValidationError(f"{field_path}.title", "题干不能为空")
            _validate_question_options(page.type, question, field_path)
    for bi, block in enumerate(data.theory_blocks):
        if not block.content.strip():
            raise QuizValidationError(f"theoryBlocks[{bi}].content", "理论块内容不能为空")


def slug_candidate(base: str, attempt: int) -> str:
    """第 1 次用原 slug，之后依次为 base-2、base-3……"""
    return base if attempt <= 1 else f"{base}-{attempt}"


async def _insert_quiz_with_unique_slug(db: AsyncSession, data: QuizSaveRequest) -> Quiz:
    """插入测验行；slug 唯一约束冲突时回滚并追加后缀重试，直到找到未占用的 slug。其余数据库错误转为 StoreError。"""
    base = data.slug.strip()
    attempt = 1
    while True:
        slug = slug_candidate(base, attempt)
        quiz = Quiz(
            id=str(uuid.uuid4()),
            title=data.title.strip(),
            description=(data.description or "").strip() or None,
            slug=slug,
        )
        db.add(quiz)
        try:
            await db.flush()
            return quiz
        except IntegrityError as e:
            await db.rollback()
            conflict = e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("[create-quiz] 写入失败 slug=%s: %s", slug, e)
            raise StoreError(f"创建测验失败: {e}") from e
        try:
            taken = await slug_exists(db, slug)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("[create-quiz] 查询 slug 失败 slug=%s: %s", slug, e)
            raise StoreError(f"创建测验失败: {e}") from e
        if not taken:
            raise StoreError(f"创建测验失败: {conflict.orig}") from conflict
        logger.info("[create-quiz] slug=%s 已被占用，追加后缀重试", slug)
        attempt += 1


async def create_quiz(db: AsyncSession, data: QuizSaveRequest) -> SaveResult:
    """创建测验及其全部页、题目、选项、理论块，单事务提交，失败整体回滚。"""
    validate_quiz_tree(data)
    quiz = await _insert_quiz_with_unique_slug(db, data)
    quiz_id, slug = quiz.id, quiz.slug
    try:
        reconciler = QuizReconciler(db)
        report = await reconciler.sync_quiz(quiz_id, data.pages, data.theory_blocks)
        report.inserted["quizzes"] += 1
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("[create-quiz] 写入失败 slug=%s: %s", slug, e)
        raise StoreError(f"创建测验失败: {e}") from e
    logger.info("[create-quiz] 创建成功 quiz_id=%s slug=%s", quiz_id, slug)
    return SaveResult(quiz_id=quiz_id, slug=slug, report=report)


async def update_quiz(db: AsyncSession, quiz_id: str, data: QuizSaveRequest) -> SaveResult | None:
    """
    编辑保存：按 ID 比对同步整棵树，保留未删除行的 ID。测验不存在返回 None。
    被删除的图片理论块在提交成功后再删文件，文件删除失败只记录在结果里。
    """
    validate_quiz_tree(data)
    slug = data.slug.strip()
    try:
        quiz = await get_quiz_by_id(db, quiz_id)
        if not quiz:
            return None
        quiz.title = data.title.strip()
        quiz.description = (data.description or "").strip() or None
        quiz.slug = slug
        reconciler = QuizReconciler(db)
        report = await reconciler.sync_quiz(quiz_id, data.pages, data.theory_blocks)
        report.updated["quizzes"] += 1
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("[update-quiz] 写入冲突 quiz_id=%s slug=%s: %s", quiz_id, slug, e)
        raise StoreError(await _update_conflict_message(db, quiz_id, slug, e)) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("[update-quiz] 写入失败 quiz_id=%s: %s", quiz_id, e)
        raise StoreError(f"保存失败: {e}") from e
    asset_deletions = await delete_assets_for_urls(report.removed_image_urls)
    return SaveResult(quiz_id=quiz_id, slug=slug, report=report, asset_deletions=asset_deletions)


async def _update_conflict_message(db: AsyncSession, quiz_id: str, slug: str, e: IntegrityError) -> str:
    """只有 slug 确实被其他测验占用时才归因于 slug，否则带上数据库原始错误。"""
    try:
        owner = await get_quiz_by_slug(db, slug)
    except SQLAlchemyError:
        logger.exception("[update-quiz] 查询 slug 失败 slug=%s", slug)
        owner = None
    if owner is not None and owner.id != quiz_id:
        return f"保存失败，slug 已被其他测验占用: {slug}"
    return f"保存失败: {e.orig}"


async def delete_quiz(db: AsyncSession, quiz_id: str) -> list[AssetDeletion] | None:
    """删除测验（级联删除全部下级），再清理其图片理论块的文件。测验不存在返回 None。"""
    try:
        quiz = await get_quiz_by_id(db, quiz_id)
        if not quiz:
            return None
        blocks = await get_theory_blocks_by_quiz_id(db, quiz_id)
        image_urls = [b.content for b in blocks if b.type == "image"]
        await delete_quiz_by_id(db, quiz_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("[delete-quiz] 删除失败 quiz_id=%s: %s", quiz_id, e)
        raise StoreError(f"删除测验失败: {e}") from e
    return await delete_assets_for_urls(image_urls)


async def delete_theory_block(db: AsyncSession, block_id: str) -> TheoryBlockDeletion | None:
    """删除单个理论块；图片块同时删除文件。两步各自尽力执行、分别汇报。块不存在返回 None。"""
    block = await get_theory_block_by_id(db, block_id)
    if not block:
        return None
    block_type, content = block.type, block.content
    result = TheoryBlockDeletion(block_id=block_id, row_deleted=False)
    try:
        await delete_theory_block_by_id(db, block_id)
        result.row_deleted = True
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("[delete-theory-block] 删除行失败 block_id=%s: %s", block_id, e)
        result.row_error = str(e)
    if block_type == "image":
        path = storage_path_from_public_url(content)
        if path is not None:
            result.asset = await delete_asset(path)
    return result
