import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import QuizValidationError, StoreError
from app.models import Option, Question, Quiz, QuizPage, TheoryBlock
from app.repositories.quiz_repository import get_quiz_tree
from app.schemas.quizzes import QuizSaveRequest
from app.services import reconcile_service
from app.services.quiz_service import (
    SLUG_INPUT_MAX_LENGTH,
    create_quiz,
    delete_quiz,
    delete_theory_block,
    slug_candidate,
    update_quiz,
    validate_quiz_tree,
)
from app.services.storage_service import upload_theory_image
from tests.helpers import build_payload, tree_to_payload


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_create_inserts_whole_tree(db):
    result = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))

    assert await _count(db, Quiz) == 1
    assert await _count(db, QuizPage) == 2
    assert await _count(db, Question) == 4
    assert await _count(db, Option) == 6 + 2
    assert await _count(db, TheoryBlock) == 1
    assert result.slug == "capitals"
    assert result.report.inserted["pages"] == 2
    assert result.report.inserted["questions"] == 4
    assert result.report.inserted["options"] == 8
    assert not result.report.deleted


async def test_input_options_are_forced_correct_and_trimmed(db):
    payload = build_payload()
    payload["pages"][1]["questions"][0]["options"].append({"text": "   ", "isCorrect": False})
    result = await create_quiz(db, QuizSaveRequest.model_validate(payload))

    tree = await get_quiz_tree(db, quiz_id=result.quiz_id)
    input_options = tree.pages[1].questions[0].options
    assert [o.text for o in input_options] == ["Paris", "paris"]
    assert all(o.is_correct for o in input_options)
    assert all(o.gap_index == 0 for o in input_options)


async def test_choice_options_do_not_keep_gap_index(db):
    payload = build_payload()
    payload["pages"][0]["questions"][0]["options"][0]["gapIndex"] = 3
    result = await create_quiz(db, QuizSaveRequest.model_validate(payload))
    tree = await get_quiz_tree(db, quiz_id=result.quiz_id)
    assert {o.gap_index for o in tree.pages[0].questions[0].options} == {0}


async def test_select_gaps_options_keep_flags_and_gap_index(db):
    payload = build_payload()
    payload["pages"].append(
        {
            "type": "select_gaps",
            "questions": [
                {
                    "title": "The cat [[]] while the dogs [[]].",
                    "options": [
                        {"text": "sits", "isCorrect": True, "gapIndex": 0},
                        {"text": "sit", "isCorrect": False, "gapIndex": 0},
                        {"text": "bark", "isCorrect": True, "gapIndex": 1},
                        {"text": "barks", "isCorrect": False, "gapIndex": None},
                    ],
                }
            ],
        }
    )
    result = await create_quiz(db, QuizSaveRequest.model_validate(payload))
    tree = await get_quiz_tree(db, quiz_id=result.quiz_id)
    options = tree.pages[2].questions[0].options
    assert [(o.text, o.is_correct, o.gap_index) for o in options] == [
        ("sits", True, 0),
        ("sit", False, 0),
        ("barks", False, 0),
        ("bark", True, 1),
    ]


async def test_saving_same_tree_twice_only_updates(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)

    first = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(tree_to_payload(tree)))
    assert sum(first.report.inserted.values()) == 0
    assert sum(first.report.deleted.values()) == 0

    tree_again = await get_quiz_tree(db, quiz_id=created.quiz_id)
    second = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(tree_to_payload(tree_again)))
    assert sum(second.report.inserted.values()) == 0
    assert sum(second.report.deleted.values()) == 0
    assert second.report.updated["pages"] == 2
    assert second.report.updated["options"] == 8
    assert tree_to_payload(tree_again) == tree_to_payload(await get_quiz_tree(db, quiz_id=created.quiz_id))


async def test_dropping_a_page_deletes_its_subtree_and_keeps_the_other(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    kept_page_id = tree.pages[0].id

    payload = tree_to_payload(tree)
    payload["pages"] = payload["pages"][:1]
    result = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    assert result.report.deleted["pages"] == 1
    after = await get_quiz_tree(db, quiz_id=created.quiz_id)
    assert [p.id for p in after.pages] == [kept_page_id]
    assert await _count(db, Question) == 3
    assert await _count(db, Option) == 6


async def test_edit_updates_inserts_and_deletes_children(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    payload = tree_to_payload(tree)
    france = payload["pages"][0]["questions"][0]
    france["title"] = "Which city is the capital of France?"
    france["options"] = [france["options"][0], {"text": "Marseille", "isCorrect": False}]
    payload["pages"][0]["questions"].pop(2)

    result = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    assert result.report.inserted["options"] == 1
    assert result.report.deleted["options"] == 1
    assert result.report.deleted["questions"] == 1
    after = await get_quiz_tree(db, quiz_id=created.quiz_id)
    first = after.pages[0].questions[0]
    assert first.id == tree.pages[0].questions[0].id
    assert first.title == "Which city is the capital of France?"
    assert [o.text for o in first.options] == ["Paris", "Marseille"]
    assert first.options[0].id == tree.pages[0].questions[0].options[0].id
    assert len(after.pages[0].questions) == 2


async def test_update_missing_quiz_returns_none(db):
    assert await update_quiz(db, "missing", QuizSaveRequest.model_validate(build_payload())) is None


async def test_slug_collision_appends_suffix(db):
    first = await create_quiz(db, QuizSaveRequest.model_validate(build_payload("capitals")))
    second = await create_quiz(db, QuizSaveRequest.model_validate(build_payload("capitals")))
    third = await create_quiz(db, QuizSaveRequest.model_validate(build_payload("capitals")))

    assert (first.slug, second.slug, third.slug) == ("capitals", "capitals-2", "capitals-3")
    assert await _count(db, Quiz) == 3
    assert await _count(db, QuizPage) == 6


def test_slug_candidate():
    assert slug_candidate("a", 1) == "a"
    assert slug_candidate("a", 2) == "a-2"
    assert slug_candidate("a", 5) == "a-5"


@pytest.mark.parametrize(
    "mutate, field",
    [
        (lambda p: p.update(title="  "), "title"),
        (lambda p: p.update(slug="has space"), "slug"),
        (lambda p: p.update(slug="s" * (SLUG_INPUT_MAX_LENGTH + 1)), "slug"),
        (lambda p: p.update(pages=[]), "pages"),
        (lambda p: p["pages"][0].update(questions=[]), "pages[0].questions"),
        (lambda p: p["pages"][0]["questions"][1].update(options=[]), "pages[0].questions[1].options"),
        (lambda p: p["pages"][1]["questions"][0].update(options=[{"text": " "}]), "pages[1].questions[0].options"),
    ],
)
async def test_validation_failure_writes_nothing(db, mutate, field):
    payload = build_payload()
    mutate(payload)
    with pytest.raises(QuizValidationError) as exc:
        await create_quiz(db, QuizSaveRequest.model_validate(payload))
    assert exc.value.field == field
    assert await _count(db, Quiz) == 0


def test_select_gaps_validation_requires_correct_option_per_gap():
    payload = build_payload()
    payload["pages"] = [
        {
            "type": "select_gaps",
            "questions": [
                {
                    "title": "[[]] and [[]]",
                    "options": [
                        {"text": "a", "isCorrect": True, "gapIndex": 0},
                        {"text": "b", "isCorrect": False, "gapIndex": 1},
                    ],
                }
            ],
        }
    ]
    with pytest.raises(QuizValidationError, match="第 2 个空"):
        validate_quiz_tree(QuizSaveRequest.model_validate(payload))


def test_multi_gap_input_needs_answer_for_every_gap():
    payload = build_payload()
    payload["pages"][1]["questions"][0] = {
        "title": "I [[]] and she [[]].",
        "options": [{"text": "go", "gapIndex": 0}],
    }
    with pytest.raises(QuizValidationError):
        validate_quiz_tree(QuizSaveRequest.model_validate(payload))


async def test_dropping_image_block_removes_stored_file(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    path, url = await upload_theory_image(created.quiz_id, "map.png", b"\x89PNG fake")

    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    payload = tree_to_payload(tree)
    payload["theoryBlocks"].append({"type": "image", "content": url})
    await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    assert [b.type for b in tree.theory_blocks] == ["text", "image"]
    payload = tree_to_payload(tree)
    payload["theoryBlocks"] = payload["theoryBlocks"][:1]
    result = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    assert result.report.deleted["theory_blocks"] == 1
    assert [(d.path, d.ok) for d in result.asset_deletions] == [(path, True)]


async def test_external_image_url_is_not_deleted(db):
    payload = build_payload()
    payload["theoryBlocks"] = [{"type": "image", "content": "https://cdn.example.org/a.png"}]
    created = await create_quiz(db, QuizSaveRequest.model_validate(payload))
    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    payload = tree_to_payload(tree)
    payload["theoryBlocks"] = []
    result = await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))
    assert result.report.deleted["theory_blocks"] == 1
    assert result.asset_deletions == []


async def test_delete_quiz_cascades(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    deletions = await delete_quiz(db, created.quiz_id)

    assert deletions == []
    for model in (Quiz, QuizPage, Question, Option, TheoryBlock):
        assert await _count(db, model) == 0
    assert await delete_quiz(db, created.quiz_id) is None


async def test_delete_theory_block_reports_row_and_asset(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    path, url = await upload_theory_image(created.quiz_id, "diagram.jpg", b"jpeg")
    tree = await get_quiz_tree(db, quiz_id=created.quiz_id)
    payload = tree_to_payload(tree)
    payload["theoryBlocks"].append({"type": "image", "content": url})
    await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))
    image_block = (await get_quiz_tree(db, quiz_id=created.quiz_id)).theory_blocks[1]

    result = await delete_theory_block(db, image_block.id)

    assert result.row_deleted
    assert result.asset is not None and result.asset.ok and result.asset.path == path
    assert await _count(db, TheoryBlock) == 1
    assert await delete_theory_block(db, image_block.id) is None


def test_slug_at_length_limit_is_accepted():
    validate_quiz_tree(QuizSaveRequest.model_validate(build_payload("s" * SLUG_INPUT_MAX_LENGTH)))


async def test_update_with_taken_slug_rolls_back_everything(db):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload("capitals")))
    await create_quiz(db, QuizSaveRequest.model_validate(build_payload("b")))
    payload = tree_to_payload(await get_quiz_tree(db, quiz_id=created.quiz_id))
    payload["slug"] = "b"
    payload["pages"] = payload["pages"][:1]

    with pytest.raises(StoreError, match="已被其他测验占用"):
        await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    after = await get_quiz_tree(db, quiz_id=created.quiz_id)
    assert after.slug == "capitals"
    assert len(after.pages) == 2


async def test_failure_while_deleting_questions_rolls_back_page_edits(db, monkeypatch):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    payload = tree_to_payload(await get_quiz_tree(db, quiz_id=created.quiz_id))
    payload["pages"][0]["title"] = "Renamed"
    payload["pages"][0]["questions"].pop(2)

    original_delete = reconcile_service.delete_rows_by_ids

    async def failing_delete(session, model, ids):
        if model is Question:
            raise OperationalError("DELETE FROM questions", {}, Exception("connection lost"))
        await original_delete(session, model, ids)

    monkeypatch.setattr(reconcile_service, "delete_rows_by_ids", failing_delete)
    with pytest.raises(StoreError, match="connection lost"):
        await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    after = await get_quiz_tree(db, quiz_id=created.quiz_id)
    assert after.pages[0].title == "Pick one"
    assert len(after.pages[0].questions) == 3


async def test_non_slug_integrity_error_on_update_keeps_database_message(db, monkeypatch):
    created = await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    payload = tree_to_payload(await get_quiz_tree(db, quiz_id=created.quiz_id))
    payload["pages"] = payload["pages"][:1]

    async def failing_delete(session, model, ids):
        raise IntegrityError("DELETE FROM quiz_pages", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(reconcile_service, "delete_rows_by_ids", failing_delete)
    with pytest.raises(StoreError) as exc:
        await update_quiz(db, created.quiz_id, QuizSaveRequest.model_validate(payload))

    assert "FOREIGN KEY constraint failed" in str(exc.value)
    assert "占用" not in str(exc.value)
    assert len((await get_quiz_tree(db, quiz_id=created.quiz_id)).pages) == 2


async def test_failure_while_syncing_options_leaves_no_quiz(db, monkeypatch):
    original_child_ids = reconcile_service.get_child_ids

    async def failing_child_ids(session, model, parent_column, parent_id):
        if model is Option:
            raise OperationalError("SELECT options.id", {}, Exception("timeout"))
        return await original_child_ids(session, model, parent_column, parent_id)

    monkeypatch.setattr(reconcile_service, "get_child_ids", failing_child_ids)
    with pytest.raises(StoreError):
        await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))

    assert await _count(db, Quiz) == 0
    assert await _count(db, QuizPage) == 0
    assert await _count(db, Question) == 0


async def test_store_error_while_inserting_quiz_row_is_wrapped(db, monkeypatch):
    async def failing_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO quizzes", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "flush", failing_flush)
    with pytest.raises(StoreError, match="disk I/O error"):
        await create_quiz(db, QuizSaveRequest.model_validate(build_payload()))
    monkeypatch.undo()

    assert await _count(db, Quiz) == 0
