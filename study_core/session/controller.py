"""会话控制器核心模块。

ChatSession 持有一份只追加的消息日志，并保证同一时刻最多只有一个请求在处理：

1. submit 追加用户消息并进入 busy 状态。
2. 用完整历史与构造时给定的固定参数构造请求，交给 responder。
3. 成功：主文本经 normalize 后追加为 assistant 消息，回调观察者。
4. 失败：追加 "Error: ..." 的 system 消息并记录错误，不自动重试。

busy 期间的再次 submit 直接抛出 SessionBusyError，不追加任何消息。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from study_core.domain.conversation import Message, MessageRole, create_message
from study_core.domain.exceptions import BusinessError, EmptyReplyError, SessionBusyError
from study_core.infrastructure.logging.logger import logger
from study_core.text.normalizer import normalize


Responder = Callable[[Any], Awaitable[Any]]
RequestBuilder = Callable[[str, Sequence[Message], Any], Any]
TextExtractor = Callable[[Any], Optional[str]]
AssistantObserver = Callable[[str, Any], None]

UNEXPECTED_ERROR = "An unexpected error occurred."


def describe_error(exc: BaseException) -> str:
    """把异常转成用户可读的错误描述。"""
    if isinstance(exc, BusinessError) and exc.message:
        return exc.message
    return str(exc) or UNEXPECTED_ERROR


class ChatSession:
    """单个对话视图的会话控制器。

    Args:
        responder: 异步调用外部模型的函数，request -> reply
        build_request: (user_text, history, params) -> request，history 含刚提交的用户消息
        extract_text: 从 reply 中取出主文本字段
        initial_messages: 初始消息（可选）
        params: 构造时固定的模式/格式/精修参数，原样传给 build_request
        on_new_assistant_content: 每次成功后以 (规范化文本, 原始 reply) 回调一次
    """

    def __init__(
        self,
        responder: Responder,
        build_request: RequestBuilder,
        extract_text: TextExtractor,
        initial_messages: Sequence[Message] = (),
        params: Any = None,
        on_new_assistant_content: Optional[AssistantObserver] = None,
        session_id: Optional[str] = None,
    ):
        self._responder = responder
        self._build_request = build_request
        self._extract_text = extract_text
        self._params = params
        self._observer = on_new_assistant_content
        self.session_id = session_id or f"s-{uuid4().hex}"
        self._messages: List[Message] = list(initial_messages)
        self._busy = False
        self._error: Optional[str] = None
        # reset 时递增，用于丢弃 reset 之前发出的请求结果
        self._generation = 0

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def params(self) -> Any:
        return self._params

    def get_messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def reset(self, initial_messages: Sequence[Message] = ()) -> None:
        """替换整个消息日志并清除错误与 busy 状态（会话身份变化时使用）。"""
        self._generation += 1
        self._messages = list(initial_messages)
        self._busy = False
        self._error = None
        self._log(logging.INFO, "Session reset", message_count=len(self._messages))

    async def submit(self, user_text: str) -> None:
        """提交一条用户输入并等待回复。

        Raises:
            SessionBusyError: 已有请求在处理中
        """
        if self._busy:
            self._log(logging.WARNING, "Rejected concurrent submit")
            raise SessionBusyError(session_id=self.session_id)

        generation = self._generation
        trace_id = f"tr-{uuid4().hex}"
        self._append("user", user_text)
        self._busy = True
        self._error = None

        try:
            request = self._build_request(user_text, self.get_messages(), self._params)
            self._log(logging.INFO, "Calling responder", trace_id=trace_id, message_count=len(self._messages))
            reply = await self._responder(request)
            if reply is None:
                raise EmptyReplyError(code="EMPTY_REPLY", message="The responder returned no reply")
            text = normalize(self._extract_text(reply) or "")
            if not text:
                raise EmptyReplyError(code="EMPTY_REPLY", message="The reply contained no text")
        except asyncio.CancelledError:
            if generation == self._generation:
                self._busy = False
            raise
        except Exception as exc:
            if generation != self._generation:
                self._log(logging.INFO, "Discarded failure from before reset", trace_id=trace_id)
                return
            message = describe_error(exc)
            logger.error(
                f"Responder failed: {message}",
                exc_info=not isinstance(exc, BusinessError),
                extra={"extra": {
                    "session_id": self.session_id,
                    "trace_id": trace_id,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                }},
            )
            self._append("system", f"Error: {message}")
            self._error = message
            self._busy = False
            return

        if generation != self._generation:
            self._log(logging.INFO, "Discarded reply from before reset", trace_id=trace_id)
            return

        self._append("assistant", text)
        self._busy = False
        self._log(logging.INFO, "Stored assistant message", trace_id=trace_id, message_count=len(self._messages))
        if self._observer:
            self._observer(text, reply)

    def _append(self, role: MessageRole, content: str) -> Message:
        now = datetime.now(timezone.utc)
        if self._messages and self._messages[-1].created_at > now:
            # 保证同一会话内时间戳单调不减
            now = self._messages[-1].created_at
        message = create_message(role, content, created_at=now)
        self._messages.append(message)
        return message

    def _log(self, level: int, message: str, **fields: Any) -> None:
        payload: Dict[str, Any] = {"session_id": self.session_id}
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
