"""Parse JSON replies from the model into pydantic output models."""

import re
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from study_core.domain.exceptions import EmptyReplyError

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```$", re.DOTALL)


def strip_code_fence(content: str) -> str:
    text = content.strip()
    match = _FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text


def parse_structured_output(content: str, model_cls: Type[T]) -> T:
    """把模型回复解析为 model_cls。

    模型有时会把 JSON 包在 ```json 代码块里，这里先去掉代码块再校验。
    回复为空或不符合 schema 时抛出 EmptyReplyError。
    """

    text = strip_code_fence(content or "")
    if not text:
        raise EmptyReplyError(code="EMPTY_REPLY", message="The model returned an empty reply")
    try:
        return model_cls.model_validate_json(text)
    except PydanticValidationError as e:
        raise EmptyReplyError(
            code="INVALID_OUTPUT",
            message=f"The model reply did not match {model_cls.__name__}: {e.error_count()} error(s)",
        )
