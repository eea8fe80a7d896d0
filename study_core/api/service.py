"""对外 API 服务模块。

提供简化的函数接口供上层应用调用：
- 一次性调用：run_study_chat / run_process_text。
- 会话：create_chat_session（笔记问答）/ create_refinement_session（结果精修）。
"""

from typing import Any, Dict, List, Optional, Sequence

from study_core.domain.conversation import Message
from study_core.flows.process_text import build_process_text_input, process_text
from study_core.flows.schemas import (
    HistoryEntry,
    OutputFormat,
    ProcessMode,
    ProcessTextInput,
    ProcessTextOutput,
    ProcessTextParams,
    RefinementState,
    StudyChatInput,
    StudyChatOutput,
    StudyChatParams,
)
from study_core.flows.study_chat import build_study_chat_input, study_chat
from study_core.infrastructure.logging.logger import logger
from study_core.providers import create_provider
from study_core.providers.base import ProviderClient
from study_core.session.controller import AssistantObserver, ChatSession


_provider: Optional[ProviderClient] = None


def get_default_provider() -> ProviderClient:
    """获取默认 Provider 实例（单例）。"""
    global _provider
    if _provider is None:
        _provider = create_provider()
    return _provider


def create_chat_session(
    notes: Optional[str] = None,
    provider: Optional[ProviderClient] = None,
    initial_messages: Sequence[Message] = (),
    on_new_assistant_content: Optional[AssistantObserver] = None,
    model: Optional[str] = None,
) -> ChatSession:
    """创建学习问答会话。

    Args:
        notes: 当前学习文档的笔记（可选，不提供则为通用学习助手）
        provider: Provider 客户端（可选）
        initial_messages: 初始消息
        on_new_assistant_content: 新回答回调
        model: 逻辑模型名（可选）
    """
    client = provider or get_default_provider()

    async def respond(data: StudyChatInput) -> StudyChatOutput:
        return await study_chat(data, provider=client, model=model)

    return ChatSession(
        responder=respond,
        build_request=build_study_chat_input,
        extract_text=lambda reply: reply.answer,
        initial_messages=initial_messages,
        params=StudyChatParams(notes=notes),
        on_new_assistant_content=on_new_assistant_content,
    )


def create_refinement_session(
    text: str,
    mode: ProcessMode,
    format: OutputFormat,
    previous_heading: Optional[str] = None,
    previous_body: Optional[str] = None,
    provider: Optional[ProviderClient] = None,
    initial_messages: Sequence[Message] = (),
    on_new_assistant_content: Optional[AssistantObserver] = None,
    model: Optional[str] = None,
) -> ChatSession:
    """创建精修会话：每条用户输入都作为对上一轮结果的精修指令。

    每次成功后，新的标题与正文成为下一轮的 previous_heading / previous_body。
    """
    client = provider or get_default_provider()
    params = ProcessTextParams(
        text=text,
        mode=mode,
        format=format,
        refinement=RefinementState(previous_heading=previous_heading, previous_body=previous_body),
    )

    async def respond(data: ProcessTextInput) -> ProcessTextOutput:
        return await process_text(data, provider=client, model=model)

    def on_reply(content: str, reply: ProcessTextOutput) -> None:
        params.refinement.advance(reply)
        if on_new_assistant_content:
            on_new_assistant_content(content, reply)

    return ChatSession(
        responder=respond,
        build_request=build_process_text_input,
        extract_text=lambda reply: reply.processed_text,
        initial_messages=initial_messages,
        params=params,
        on_new_assistant_content=on_reply,
    )


async def run_study_chat(
    question: str,
    notes: Optional[str] = None,
    chat_history: Optional[List[Dict[str, str]]] = None,
    provider: Optional[ProviderClient] = None,
) -> Dict[str, Any]:
    """运行一次学习问答（无会话状态）。

    Returns:
        {"answer": ...}
    """
    try:
        data = StudyChatInput(
            notes=notes,
            question=question,
            chat_history=[HistoryEntry(**entry) for entry in chat_history] if chat_history else None,
        )
        output = await study_chat(data, provider=provider or get_default_provider())
        return output.model_dump()
    except Exception as e:
        logger.error(f"Study chat failed: {e}", extra={"extra": {"error": str(e)}})
        raise


async def run_process_text(
    text: str,
    mode: ProcessMode,
    format: OutputFormat,
    provider: Optional[ProviderClient] = None,
) -> Dict[str, Any]:
    """首次处理一段文本。

    Returns:
        {"generated_heading": ..., "processed_text": ...}，可作为精修会话的初始状态
    """
    try:
        data = ProcessTextInput(text=text, mode=mode, format=format)
        output = await process_text(data, provider=provider or get_default_provider())
        return output.model_dump()
    except Exception as e:
        logger.error(f"Process text failed: {e}", extra={"extra": {"mode": mode, "format": format, "error": str(e)}})
        raise
