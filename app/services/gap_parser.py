"""填空占位符解析：题干中的 [[]] 表示一个空，按出现顺序从 0 编号。

不支持转义，题干中字面量 [[]] 一律视为空。
"""

GAP_TOKEN = "[[]]"


def count_gaps(template: str | None) -> int:
    """题干中占位符出现次数（不重叠计数），可为 0。"""
    if not template:
        return 0
    return template.count(GAP_TOKEN)


def effective_gap_count(template: str | None) -> int:
    """作答与判分使用的空数：没有占位符的题目视为只有一个空（序号 0）。"""
    return max(count_gaps(template), 1)


def split_template(template: str | None) -> list[str]:
    """按占位符切分题干，返回 count_gaps + 1 段文本，供前端在段与段之间渲染输入框。"""
    return (template or "").split(GAP_TOKEN)
