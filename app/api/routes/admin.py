"""管理后台：测验的创建、编辑、删除，理论图片上传与理论块删除。所有接口先校验管理员身份。"""
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.api.routes.quizzes import quiz_list_item, theory_block_items
from app.core.config import settings
from app.core.db import get_db
from app.core.errors import QuizValidationError, StoreError
from app.repositories.quiz_repository import get_quiz_by_id, get_quiz_tree, list_quizzes
from app.schemas.quizzes import (
    AdminMeResponse,
    AdminOptionItem,
    AdminPageItem,
    AdminQuestionItem,
    AdminQuizDetailResponse,
    AssetDeletionItem,
    DeleteTheoryBlockResponse,
    QuizListResponse,
    QuizSaveRequest,
    SaveQuizResponse,
    TheoryImageUploadResponse,
)
from app.services.gap_parser import effective_gap_count
from app.services.quiz_service import SaveResult, create_quiz, delete_quiz, delete_theory_block, update_quiz
from app.services.quiz_tree import QuizTree
from app.services.storage_service import AssetDeletion, upload_theory_image

logger = logging.getLogger(__name__)
router = APIRouter()

SAVE_FAILED = "保存失败，请稍后重试"


def _asset_item(d: AssetDeletion) -> AssetDeletionItem:
    return AssetDeletionItem(path=d.path, ok=d.ok, error=d.error)


def _save_response(result: SaveResult) -> SaveQuizResponse:
    report = result.report
    return SaveQuizResponse(
        quizId=result.quiz_id,
        slug=result.slug,
        inserted=dict(report.inserted),
        updated=dict(report.updated),
        deleted=dict(report.deleted),
        assetDeletions=[_asset_item(d) for d in result.asset_deletions],
    )


def _validation_exception(e: QuizValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"field": e.field, "message": e.message})


def _tree_to_admin_detail(tree: QuizTree) -> AdminQuizDetailResponse:
    pages = [
        AdminPageItem(
            pageId=page.id,
            type=page.type,
            title=page.title,
            orderIndex=page.order_index,
            questions=[
                AdminQuestionItem(
                    questionId=q.id,
                    title=q.title,
                    explanation=q.explanation,
                    orderIndex=q.order_index,
                    gapCount=effective_gap_count(q.title),
                    options=[
                        AdminOptionItem(optionId=o.id, text=o.text, gapIndex=o.gap_index, isCorrect=o.is_correct)
                        for o in q.options
                    ],
                )
                for q in page.questions
            ],
        )
        for page in tree.pages
    ]
    return AdminQuizDetailResponse(
        quizId=tree.id,
        title=tree.title,
        description=tree.description,
        slug=tree.slug,
        createdAt=tree.created_at.isoformat() if tree.created_at else "",
        pages=pages,
        theoryBlocks=theory_block_items(tree),
    )


@router.get("/me", response_model=AdminMeResponse)
async def admin_me(email: str = Depends(require_admin)):
    """当前管理员身份（前端据此决定是否展示后台）。"""
    return AdminMeResponse(email=email, isAdmin=True)


@router.get("/quizzes", response_model=QuizListResponse)
async def admin_list_quizzes(
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    try:
        quizzes = await list_quizzes(db)
    except SQLAlchemyError as e:
        logger.exception("读取测验列表失败: %s", e)
        raise HTTPException(status_code=500, detail="读取测验失败，请稍后重试")
    return QuizListResponse(items=[quiz_list_item(q) for q in quizzes], total=len(quizzes))


@router.get("/quizzes/{quiz_id}", response_model=AdminQuizDetailResponse)
async def admin_get_quiz(
    quiz_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    """编辑页数据：含正确标记、空序号与解析。"""
    try:
        tree = await get_quiz_tree(db, quiz_id=quiz_id)
    except SQLAlchemyError as e:
        logger.exception("读取测验失败 quiz_id=%s: %s", quiz_id, e)
        raise HTTPException(status_code=500, detail="读取测验失败，请稍后重试")
    if tree is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    return _tree_to_admin_detail(tree)


@router.post("/quizzes", response_model=SaveQuizResponse, status_code=201)
async def admin_create_quiz(
    body: QuizSaveRequest,
    db: AsyncSession = Depends(get_db),
    admin: str = Depends(require_admin),
):
    """
    创建测验。slug 冲突时自动追加 -2、-3… 后缀，返回最终使用的 slug。
    """
    logger.info("[create-quiz] admin=%s slug=%s pages=%d", admin, body.slug, len(body.pages))
    try:
        result = await create_quiz(db, body)
    except QuizValidationError as e:
        raise _validation_exception(e)
    except StoreError as e:
        logger.warning("[create-quiz] %s", e)
        raise HTTPException(status_code=500, detail=str(e) or SAVE_FAILED)
    return _save_response(result)


@router.put("/quizzes/{quiz_id}", response_model=SaveQuizResponse)
async def admin_update_quiz(
    quiz_id: str,
    body: QuizSaveRequest,
    db: AsyncSession = Depends(get_db),
    admin: str = Depends(require_admin),
):
    """
    编辑保存：按 ID 同步页、题目、选项与理论块。请求中带已有 ID 的行更新，不带 ID 的新增，缺失的删除。
    同一请求重复提交结果不变（只会产生更新）。
    """
    logger.info("[update-quiz] admin=%s quiz_id=%s", admin, quiz_id)
    try:
        result = await update_quiz(db, quiz_id, body)
    except QuizValidationError as e:
        raise _validation_exception(e)
    except StoreError as e:
        logger.warning("[update-quiz] %s", e)
        raise HTTPException(status_code=500, detail=str(e) or SAVE_FAILED)
    if result is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    return _save_response(result)


@router.delete("/quizzes/{quiz_id}", response_model=list[AssetDeletionItem])
async def admin_delete_quiz(
    quiz_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    """删除测验及全部下级，返回图片文件的删除结果。"""
    try:
        deletions = await delete_quiz(db, quiz_id)
    except StoreError as e:
        logger.warning("[delete-quiz] %s", e)
        raise HTTPException(status_code=500, detail="删除失败，请稍后重试")
    if deletions is None:
        raise HTTPException(status_code=404, detail="quiz not found")
    return [_asset_item(d) for d in deletions]


@router.post("/theory-images", response_model=TheoryImageUploadResponse, status_code=201)
async def admin_upload_theory_image(
    quizId: str = Form(..., description="图片所属测验 ID"),
    file: UploadFile = File(..., description="理论块图片"),
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    """上传理论块图片，返回公开 URL，保存测验时作为图片理论块的 content 提交。"""
    if not await get_quiz_by_id(db, quizId):
        raise HTTPException(status_code=404, detail="quiz not found")
    limit = settings.max_upload_bytes
    # 多读 1 字节用于判断超限
    data = await file.read(limit + 1)
    if not data:
        raise HTTPException(status_code=400, detail="请上传图片")
    if len(data) > limit:
        raise HTTPException(status_code=413, detail=f"图片不能超过 {limit} 字节")
    try:
        path, url = await upload_theory_image(quizId, file.filename or "", data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.exception("图片上传失败: %s", e)
        raise HTTPException(status_code=500, detail="图片上传失败，请稍后重试")
    return TheoryImageUploadResponse(path=path, url=url)


@router.delete("/theory-blocks/{block_id}", response_model=DeleteTheoryBlockResponse)
async def admin_delete_theory_block(
    block_id: str,
    response: Response,
    db: AsyncSession = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    """删除理论块；图片块同时删除文件。行与文件的删除结果分别返回。"""
    result = await delete_theory_block(db, block_id)
    if result is None:
        raise HTTPException(status_code=404, detail="theory block not found")
    if not result.row_deleted:
        response.status_code = 500
    return DeleteTheoryBlockResponse(
        blockId=result.block_id,
        rowDeleted=result.row_deleted,
        rowError=result.row_error,
        asset=_asset_item(result.asset) if result.asset else None,
    )
