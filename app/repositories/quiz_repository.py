"""测验（Quiz）、页（QuizPage）、题目（Question）、选项（Option）、理论块（TheoryBlock）数据访问层。"""
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.option import Option
from app.models.question import Question
from app.models.quiz import Quiz
from app.models.quiz_page import QuizPage
from app.models.theory_block import TheoryBlock
from app.services.quiz_tree import OptionNode, PageNode, QuestionNode, QuizTree, TheoryBlockNode


async def get_quiz_by_id(db: AsyncSession, quiz_id: str) -> Quiz | None:
    """按 ID 查询测验，不存在返回 None。"""
    result = await db.execute(select(Quiz).where(Quiz.id == quiz_id))
    return result.scalars().first()


async def get_quiz_by_slug(db: AsyncSession, slug: str) -> Quiz | None:
    """按 slug 查询测验，不存在返回 None。"""
    result = await db.execute(select(Quiz).where(Quiz.slug == slug))
    return result.scalars().first()


async def slug_exists(db: AsyncSession, slug: str) -> bool:
    result = await db.execute(select(Quiz.id).where(Quiz.slug == slug).limit(1))
    return result.scalar_one_or_none() is not None


async def list_quizzes(db: AsyncSession) -> list[Quiz]:
    """全部测验，按创建时间倒序（首页与后台列表）。"""
    result = await db.execute(select(Quiz).order_by(Quiz.created_at.desc(), Quiz.title.asc()))
    return list(result.scalars().all())


async def get_pages_by_quiz_id(db: AsyncSession, quiz_id: str) -> list[QuizPage]:
    result = await db.execute(
        select(QuizPage).where(QuizPage.quiz_id == quiz_id).order_by(QuizPage.order_index.asc())
    )
    return list(result.scalars().all())


async def get_questions_by_page_ids(db: AsyncSession, page_ids: list[str]) -> list[Question]:
    """批量按页 ID 查询题目，按 order_index 升序。"""
    if not page_ids:
        return []
    result = await db.execute(
        select(Question).where(Question.page_id.in_(page_ids)).order_by(Question.order_index.asc())
    )
    return list(result.scalars().all())


async def get_options_by_question_ids(db: AsyncSession, question_ids: list[str]) -> list[Option]:
    """批量按题目 ID 查询选项，按空序号、order_index 升序。"""
    if not question_ids:
        return []
    result = await db.execute(
        select(Option)
        .where(Option.question_id.in_(question_ids))
        .order_by(Option.gap_index.asc(), Option.order_index.asc())
    )
    return list(result.scalars().all())


async def get_theory_blocks_by_quiz_id(db: AsyncSession, quiz_id: str) -> list[TheoryBlock]:
    result = await db.execute(
        select(TheoryBlock).where(TheoryBlock.quiz_id == quiz_id).order_by(TheoryBlock.order_index.asc())
    )
    return list(result.scalars().all())


async def get_theory_block_by_id(db: AsyncSession, block_id: str) -> TheoryBlock | None:
    result = await db.execute(select(TheoryBlock).where(TheoryBlock.id == block_id))
    return result.scalars().first()


async def get_child_ids(db: AsyncSession, model, parent_column, parent_id: str) -> list[str]:
    """某父节点下现有子行的 ID 列表（编辑同步时比对用）。"""
    result = await db.execute(select(model.id).where(parent_column == parent_id))
    return [row[0] for row in result.all()]


async def get_rows_by_ids(db: AsyncSession, model, ids: list[str]) -> list:
    if not ids:
        return []
    result = await db.execute(select(model).where(model.id.in_(ids)))
    return list(result.scalars().all())


async def delete_rows_by_ids(db: AsyncSession, model, ids: list[str]) -> None:
    """按 ID 删除（不 commit）。子表依赖外键 ON DELETE CASCADE 一并删除。"""
    if not ids:
        return
    await db.execute(delete(model).where(model.id.in_(ids)))


async def delete_quiz_by_id(db: AsyncSession, quiz_id: str) -> None:
    """删除测验，页、题目、选项、理论块由外键级联删除。"""
    await db.execute(delete(Quiz).where(Quiz.id == quiz_id))
    await db.commit()


async def delete_theory_block_by_id(db: AsyncSession, block_id: str) -> None:
    await db.execute(delete(TheoryBlock).where(TheoryBlock.id == block_id))
    await db.commit()


async def get_quiz_tree(
    db: AsyncSession,
    *,
    quiz_id: str | None = None,
    slug: str | None = None,
) -> QuizTree | None:
    """
    读取测验完整结构：测验 → 页 → 题目 → 选项，外加理论块。
    每一层按父 ID 集合批量查询一次，避免逐个父节点查询。测验不存在返回 None；其余查询错误原样抛出。
    """
    if quiz_id is not None:
        quiz = await get_quiz_by_id(db, quiz_id)
    elif slug is not None:
        quiz = await get_quiz_by_slug(db, slug)
    else:
        raise ValueError("quiz_id 与 slug 至少提供一个")
    if not quiz:
        return None

    pages = await get_pages_by_quiz_id(db, quiz.id)
    questions = await get_questions_by_page_ids(db, [p.id for p in pages])
    options = await get_options_by_question_ids(db, [q.id for q in questions])
    blocks = await get_theory_blocks_by_quiz_id(db, quiz.id)

    options_by_question: dict[str, list[OptionNode]] = {}
    for o in options:
        options_by_question.setdefault(o.question_id, []).append(
            OptionNode(
                id=o.id,
                text=o.text,
                is_correct=bool(o.is_correct),
                gap_index=o.gap_index or 0,
                order_index=o.order_index or 0,
            )
        )
    questions_by_page: dict[str, list[QuestionNode]] = {}
    for q in questions:
        questions_by_page.setdefault(q.page_id, []).append(
            QuestionNode(
                id=q.id,
                title=q.title,
                explanation=q.explanation,
                order_index=q.order_index,
                options=options_by_question.get(q.id, []),
            )
        )
    return QuizTree(
        id=quiz.id,
        title=quiz.title,
        slug=quiz.slug,
        description=quiz.description,
        created_at=quiz.created_at,
        pages=[
            PageNode(
                id=p.id,
                type=p.type,
                title=p.title,
                order_index=p.order_index,
                questions=questions_by_page.get(p.id, []),
            )
            for p in pages
        ],
        theory_blocks=[
            TheoryBlockNode(id=b.id, type=b.type, content=b.content, order_index=b.order_index)
            for b in blocks
        ],
    )
