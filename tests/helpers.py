"""测试用的测验结构构造函数。"""
from app.services.quiz_tree import QuizTree


def build_payload(slug: str = "capitals") -> dict:
    """两页：第一页 3 道单选题，第二页 1 道单空输入题（2 个可接受答案），外加一个文本理论块。"""
    return {
        "title": "Capitals",
        "description": "Geography warm-up",
        "slug": slug,
        "pages": [
            {
                "type": "single",
                "title": "Pick one",
                "questions": [
                    {
                        "title": "Capital of France?",
                        "explanation": "Paris has been the capital since 987.",
                        "options": [
                            {"text": "Paris", "isCorrect": True},
                            {"text": "Lyon", "isCorrect": False},
                        ],
                    },
                    {
                        "title": "Capital of Italy?",
                        "options": [
                            {"text": "Rome", "isCorrect": True},
                            {"text": "Milan", "isCorrect": False},
                            {"text": "Turin", "isCorrect": False},
                        ],
                    },
                    {
                        "title": "Capital of Spain?",
                        "options": [{"text": "Madrid", "isCorrect": True}],
                    },
                ],
            },
            {
                "type": "input",
                "questions": [
                    {
                        "title": "The capital of France is [[]].",
                        "options": [{"text": "Paris"}, {"text": "paris "}],
                    },
                ],
            },
        ],
        "theoryBlocks": [{"type": "text", "content": "A capital is the seat of government."}],
    }


def tree_to_payload(tree: QuizTree) -> dict:
    """把读出的结构还原成带 ID 的保存请求（编辑页原样提交）。"""
    return {
        "title": tree.title,
        "description": tree.description,
        "slug": tree.slug,
        "pages": [
            {
                "id": page.id,
                "type": page.type,
                "title": page.title,
                "orderIndex": page.order_index,
                "questions": [
                    {
                        "id": q.id,
                        "title": q.title,
                        "explanation": q.explanation,
                        "orderIndex": q.order_index,
                        "options": [
                            {"id": o.id, "text": o.text, "isCorrect": o.is_correct, "gapIndex": o.gap_index}
                            for o in q.options
                        ],
                    }
                    for q in page.questions
                ],
            }
            for page in tree.pages
        ],
        "theoryBlocks": [
            {"id": b.id, "type": b.type, "content": b.content, "orderIndex": b.order_index}
            for b in tree.theory_blocks
        ],
    }
