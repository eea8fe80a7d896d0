"""学习对话 flow。

提供笔记时，围绕笔记回答问题；未提供笔记时，作为通用学习助手回答。
会把对话历史带入提示词以保持上下文，只回答与学习相关的问题。

- build_study_chat_request: 把 StudyChatInput 渲染成 ChatRequest。
- study_chat: 调用 Provider 并解析为 StudyChatOutput。
- build_study_chat_input: 会话层使用的请求构造函数。
"""

from typing import List, Optional, Sequence

from study_core.config.settings import settings
from study_core.domain.conversation import Message
from study_core.domain.models import ChatMessage, ChatRequest
from study_core.flows.schemas import HistoryEntry, StudyChatInput, StudyChatOutput, StudyChatParams
from study_core.flows.structured import parse_structured_output
from study_core.prompts import load_prompt, render_prompt
from study_core.providers import create_provider
from study_core.providers.base import ProviderClient


def format_chat_history(history: Optional[Sequence[HistoryEntry]]) -> str:
    """每条历史一行：用户消息前缀 "User:"，助手消息前缀 "AI:"。"""

    if not history:
        return ""
    return "\n".join(
        f"{'User' if entry.role == 'user' else 'AI'}: {entry.content}" for entry in history
    )


def build_study_chat_prompt(data: StudyChatInput) -> str:
    if data.notes:
        notes_section = render_prompt("study_chat_notes", notes=data.notes)
    else:
        notes_section = load_prompt("study_chat_general")

    history = list(data.chat_history or [])
    max_context = settings.max_context_messages
    if len(history) > max_context:
        history = history[-max_context:]
    formatted_history = format_chat_history(history)
    history_section = ""
    if formatted_history:
        history_section = render_prompt("study_chat_history", formatted_history=formatted_history)

    return render_prompt(
        "study_chat",
        notes_section=notes_section,
        history_section=history_section,
        question=data.question,
    )


def build_study_chat_request(
    data: StudyChatInput,
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> ChatRequest:
    return ChatRequest(
        provider=provider_name or settings.default_provider,
        model=model or settings.default_model,
        messages=[ChatMessage(role="user", content=build_study_chat_prompt(data))],
        temperature=settings.temperature,
        response_format="json_object",
    )


async def study_chat(
    data: StudyChatInput,
    provider: Optional[ProviderClient] = None,
    model: Optional[str] = None,
) -> StudyChatOutput:
    """执行一次学习问答。

    Args:
        data: 问题、可选笔记与历史
        provider: Provider 客户端（可选，默认按配置创建）
        model: 逻辑模型名（可选）

    Returns:
        解析后的 StudyChatOutput

    Raises:
        EmptyReplyError: 模型回复为空或无法解析
        各种 provider 层的 BusinessError
    """
    client = provider or create_provider()
    req = build_study_chat_request(data, provider_name=client.name, model=model)
    result = await client.chat(req)
    return parse_structured_output(result.text, StudyChatOutput)


def build_study_chat_input(
    user_text: str,
    history: Sequence[Message],
    params: Optional[StudyChatParams],
) -> StudyChatInput:
    """由会话历史构造 StudyChatInput。

    history 的最后一条是刚提交的用户消息，作为 question；
    之前的 user/assistant 消息作为 chat_history，system 错误条目不发给模型。
    """

    prior = history[:-1] if history and history[-1].role == "user" else history
    entries: List[HistoryEntry] = [
        HistoryEntry(role=m.role, content=m.content)
        for m in prior
        if m.role in ("user", "assistant")
    ]
    return StudyChatInput(
        notes=params.notes if params else None,
        question=user_text,
        chat_history=entries or None,
    )
