"""作答端：测验列表、按 slug 读取测验、按页判分。"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.quiz import Quiz
from app.repositories.quiz_repository import get_quiz_tree, list_quizzes as repo_list_quizzes
from app.schemas.quizzes import (
    CheckRequest,
    CheckResponse,
    CheckResultItem,
    OptionItem,
    PageItem,
    QuestionItem,
    QuizDetailResponse,
    QuizListItem,
    QuizListResponse,
    TheoryBlockItem,
)
from app.services.gap_parser import effective_gap_count, split_template
from app.services.quiz_tree import QuizTree
from app.services.scoring_service import correct_option_ids, score_page

logger = logging.getLogger(__name__)
router = APIRouter()

READ_FAILED = "读取测验失败，请稍后重试"


def quiz_list_item(quiz: Quiz) -> QuizListItem:
    return QuizListItem(
        quizId=quiz.id,
        title=quiz.title,
        description=quiz.description,
        slug=quiz.slug,
        createdAt=quiz.created_at.isoformat() if quiz.created_at else "",
    )


def theory_block_items(tree: QuizTree) -> list[TheoryBlockItem]:
    return [
        TheoryBlockItem(blockId=b.id, type=b.type, content=b.content, orderIndex=b.order_index)
        for b in tree.theory_blocks
    ]


def _tree_to_detail(tree: QuizTree) -> QuizDetailResponse:
    """作答页数据：不下发正确标记与解析；输入题的选项就是答案，整体不下发。"""
    pages = []
    for page in tree.pages:
        questions = []
        for q in page.questions:
            options = []
            if page.type != "input":
                options = [OptionItem(optionId=o.id, text=o.text, gapIndex=o.gap_index) for o in q.options]
            questions.append(
                QuestionItem(
                    questionId=q.id,
                    title=q.title,
                    segments=split_template(q.title),
                    gapCount=effective_gap_count(q.title),
                    options=options,
                )
            )
        pages.append(
            PageItem(pageId=page.id, type=page.type, title=page.title, orderIndex=page.order_index, questions=questions)
        )
    return QuizDetailResponse(
        quizId=tree.id,
        title=tree.title,
        description=tree.description,
        slug=tree.slug,
        createdAt=tree.created_at.isoformat() if tree.created_at else "",
        pages=pages,
        theoryBlocks=theory_block_items(tree),
    )


async def _load_tree_by_slug(db: AsyncSession, slug: str) -> QuizTree:
    slug = (slug or "").strip()
    if not slug:
        raise HTTPException(status_code=404, detail="quiz not found")
    try:
        tree = await get_quiz_tree(db, slug=slug)
    except SQLAlchemyError as e:
        logger.exception("读取测验失败 slug=%s: %s", slug, e)
        raise HTTPException(status_code=500, detail=READ_FAILED)
    if tree is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    return tree


@router.get("/quizzes", response_model=QuizListResponse)
async def list_quizzes(db: AsyncSession = Depends(get_db)):
    """首页测验列表，按创建时间倒序。"""
    try:
        quizzes = await repo_list_quizzes(db)
    except SQLAlchemyError as e:
        logger.exception("读取测验列表失败: %s", e)
        raise HTTPException(status_code=500, detail=READ_FAILED)
    return QuizListResponse(items=[quiz_list_item(q) for q in quizzes], total=len(quizzes))


@router.get("/quizzes/{slug}", response_model=QuizDetailResponse)
async def get_quiz(slug: str, db: AsyncSession = Depends(get_db)):
    """按 slug 读取测验：页、题目、选项、理论块，均按顺序排列。"""
    tree = await _load_tree_by_slug(db, slug)
    return _tree_to_detail(tree)


@router.post("/quizzes/{slug}/pages/{page_id}/check", response_model=CheckResponse)
async def check_page(
    slug: str,
    page_id: str,
    body: CheckRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    检查一页的作答，返回答对题数/总题数及每题对错、正确选项与解析。不保存任何记录。
    """
    tree = await _load_tree_by_slug(db, slug)
    page = tree.find_page(page_id)
    if page is None:
        raise HTTPException(status_code=404, detail="page not found")
    answers = {a.questionId: a.answer for a in body.answers}
    score = score_page(page, answers)
    questions_by_id = {q.id: q for q in page.questions}
    results = []
    for r in score.results:
        q = questions_by_id[r.question_id]
        results.append(
            CheckResultItem(
                questionId=r.question_id,
                isCorrect=r.is_correct,
                gaps=r.gaps,
                correctOptionIds=correct_option_ids(q),
                explanation=q.explanation,
            )
        )
    logger.info("[check] slug=%s page_id=%s 得分 %d/%d", tree.slug, page_id, score.correct, score.total)
    return CheckResponse(correct=score.correct, total=score.total, results=results)
