"""模型输出文本规范化。

模型返回的正文常带有 \r\n、只含空白的行以及大段空行，
在展示前统一清理为：\n 换行、段落之间最多保留一个空行、首尾无空白。
"""

import re

_LINE_ENDINGS = re.compile(r"\r\n|\r")
_BLANK_LINES = re.compile(r"^\s*$", re.MULTILINE)
_NEWLINE_RUNS = re.compile(r"\n{2,}")


def normalize(text: str) -> str:
    """清理模型输出正文。

    步骤（顺序不可调换）：
    1. 去掉首尾空白。
    2. 把 \\r\\n 与 \\r 统一为 \\n。
    3. 只含空白的行替换为空行。
    4. 连续两个及以上的 \\n 合并为两个（最多一个空行）。
    5. 再次去掉首尾空白（第 4 步可能留下首尾换行）。

    该函数是幂等的：normalize(normalize(x)) == normalize(x)。
    """

    cleaned = text.strip()
    cleaned = _LINE_ENDINGS.sub("\n", cleaned)
    cleaned = _BLANK_LINES.sub("", cleaned)
    cleaned = _NEWLINE_RUNS.sub("\n\n", cleaned)
    return cleaned.strip()


def normalize_heading(text: str) -> str:
    return text.strip()
