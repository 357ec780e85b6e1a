"""判分：根据页类型、题目选项与作答计算单题与整页对错。

纯函数，不读写数据库。作答格式随页类型不同：
- single：选中的选项 ID（也接受只含一个 ID 的列表）
- multiple：选中的选项 ID 集合
- input：单空为字符串；多空为 {空序号: 文本} 或按空顺序排列的列表
- select_gaps：{空序号: 选项 ID}；单空也可直接给选项 ID
未作答（None）一律判错，不做校验报错。
"""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from app.models.quiz_page import CHOICE_PAGE_TYPES, GAP_PAGE_TYPES
from app.services.gap_parser import effective_gap_count
from app.services.quiz_tree import OptionNode, PageNode, QuestionNode


@dataclass
class QuestionScore:
    question_id: str
    is_correct: bool
    # 每个空的对错；选择题只有一项
    gaps: list[bool] = field(default_factory=list)


@dataclass
class PageScore:
    correct: int
    total: int
    results: list[QuestionScore] = field(default_factory=list)


def normalize_text(value: Any) -> str:
    """去掉首尾空白并做大小写折叠。"""
    if value is None:
        return ""
    return str(value).strip().casefold()


def _gap_answers(answer: Any) -> dict[int, Any]:
    """把作答统一成 {空序号: 值}，无法识别的键忽略。"""
    if answer is None:
        return {}
    if isinstance(answer, Mapping):
        out: dict[int, Any] = {}
        for key, value in answer.items():
            try:
                out[int(key)] = value
            except (TypeError, ValueError):
                continue
        return out
    if isinstance(answer, (list, tuple)):
        return dict(enumerate(answer))
    return {0: answer}


def _options_for_gap(options: list[OptionNode], gap: int, gap_count: int) -> list[OptionNode]:
    # 单空题：题目下所有选项都属于这个空
    if gap_count == 1:
        return list(options)
    return [o for o in options if (o.gap_index or 0) == gap]


def _score_single(options: list[OptionNode], answer: Any) -> bool:
    if isinstance(answer, (list, tuple, set, frozenset)):
        chosen = list(answer)
        if len(chosen) != 1:
            return False
        answer = chosen[0]
    if not isinstance(answer, str) or not answer:
        return False
    correct_ids = [o.id for o in options if o.is_correct]
    return len(correct_ids) == 1 and answer == correct_ids[0]


def _score_multiple(options: list[OptionNode], answer: Any) -> bool:
    if isinstance(answer, str):
        selected = {answer}
    elif isinstance(answer, Iterable) and not isinstance(answer, Mapping):
        selected = {x for x in answer if isinstance(x, str)}
    else:
        return False
    correct_ids = {o.id for o in options if o.is_correct}
    return selected == correct_ids


def _score_input_gaps(question: QuestionNode, answer: Any) -> list[bool]:
    gap_count = effective_gap_count(question.title)
    answers = _gap_answers(answer)
    results: list[bool] = []
    for gap in range(gap_count):
        submitted = normalize_text(answers.get(gap))
        if not submitted:
            results.append(False)
            continue
        accepted = {normalize_text(o.text) for o in _options_for_gap(question.options, gap, gap_count)}
        accepted.discard("")
        results.append(submitted in accepted)
    return results


def _score_select_gaps(question: QuestionNode, answer: Any) -> list[bool]:
    gap_count = effective_gap_count(question.title)
    answers = _gap_answers(answer)
    results: list[bool] = []
    for gap in range(gap_count):
        chosen = answers.get(gap)
        correct_ids = {o.id for o in _options_for_gap(question.options, gap, gap_count) if o.is_correct}
        results.append(isinstance(chosen, str) and chosen in correct_ids)
    return results


def score_question(page_type: str, question: QuestionNode, answer: Any) -> QuestionScore:
    """单题判分。无选项或未作答判错；正确选项配置异常（如单选有多个正确项）也只判错，不抛异常。"""
    if page_type in GAP_PAGE_TYPES:
        gap_count = effective_gap_count(question.title)
    elif page_type in CHOICE_PAGE_TYPES:
        gap_count = 1
    else:
        raise ValueError(f"未知的页类型: {page_type}")

    if not question.options or answer is None:
        return QuestionScore(question_id=question.id, is_correct=False, gaps=[False] * gap_count)

    if page_type == "single":
        gaps = [_score_single(question.options, answer)]
    elif page_type == "multiple":
        gaps = [_score_multiple(question.options, answer)]
    elif page_type == "input":
        gaps = _score_input_gaps(question, answer)
    else:
        gaps = _score_select_gaps(question, answer)
    return QuestionScore(question_id=question.id, is_correct=all(gaps), gaps=gaps)


def score_page(page: PageNode, answers: Mapping[str, Any]) -> PageScore:
    """整页判分，返回 (答对题数, 总题数) 及每题结果。"""
    results = [score_question(page.type, q, answers.get(q.id)) for q in page.questions]
    correct = sum(1 for r in results if r.is_correct)
    return PageScore(correct=correct, total=len(results), results=results)


def correct_option_ids(question: QuestionNode) -> list[str]:
    """判分后展示用：被标为正确的选项 ID（填空题的选项均为可接受答案）。"""
    return [o.id for o in question.options if o.is_correct]
