"""OpenAI 兼容 chat/completions 接口的通用适配器。

Gemini（OpenAI 兼容端点）、Kimi、GLM 都使用同一种协议：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 HTTP 请求体（model/messages/temperature/max_tokens/top_p/stream/response_format）。
3. 调用 HTTP 接口并处理网络/限流/API 异常。
4. 将响应 JSON 解析为统一的 ChatResult。

具体厂商只需要子类化并声明 name、配置对象以及 settings 中的字段名。
"""

import logging
from typing import Any, Dict, Optional

import httpx

from study_core.config.settings import settings
from study_core.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from study_core.domain.models import (
    ChatChoice,
    ChatMessage,
    ChatRequest,
    ChatResult,
    ChatUsage,
)
from study_core.infrastructure.logging.logger import logger
from study_core.providers.registry import ModelConfig, ProviderConfig


class OpenAICompatibleClient:
    """OpenAI 兼容 Provider 客户端基类。

    - name: Provider 名称（供日志/调试使用）。
    - config: registry 中的 ProviderConfig。
    - api_key_field / base_url_field: settings 中对应的字段名。
    """

    name: str = ""
    config: ProviderConfig
    api_key_field: str = ""
    base_url_field: str = ""

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = cfg

    async def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次对话调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。
        """

        api_key = getattr(self._settings, self.api_key_field, None)
        if not api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(
                code="MISSING_API_KEY",
                message=f"{self.api_key_field.upper()} not set",
                provider=self.name,
            )
        model_cfg = self._model_config(req.model)
        payload = self._build_payload(req, model_cfg)
        base = getattr(self._settings, self.base_url_field, None) or self.config.base_url
        logger.log(
            logging.DEBUG,
            "Calling provider",
            extra={"extra": {
                "provider": self.name,
                "model": model_cfg.provider_model,
                "message_count": len(req.messages),
            }},
        )
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__, provider=self.name)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code, provider=self.name)
        data = resp.json()
        return self._parse_response(data, req)

    # ---- 辅助方法 ----

    def _model_config(self, logical_name: str) -> ModelConfig:
        try:
            return self.config.models[logical_name]
        except KeyError:
            raise ValidationError(
                code="UNKNOWN_MODEL",
                message=f"Unknown model {logical_name!r} for provider {self.name}",
            )

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> dict:
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "top_p": req.top_p,
            "stream": False,
        }
        if req.response_format == "json_object":
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        choices: list[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            cm = ChatMessage(role=msg.get("role") or "assistant", content=msg.get("content") or "")
            choices.append(ChatChoice(index=ch.get("index", i), message=cm, finish_reason=ch.get("finish_reason")))
        return ChatResult(
            provider=self.name,
            model=req.model,
            choices=choices,
            usage=self._parse_usage(data.get("usage")),
            raw=data,
        )

    @staticmethod
    def _parse_usage(usage_raw: Optional[dict]) -> Optional[ChatUsage]:
        if not usage_raw:
            return None
        return ChatUsage(
            prompt_tokens=usage_raw.get("prompt_tokens", 0),
            completion_tokens=usage_raw.get("completion_tokens", 0),
            total_tokens=usage_raw.get("total_tokens", 0),
        )

    @staticmethod
    def _message_to_payload(message: ChatMessage) -> Dict[str, Any]:
        return {"role": message.role, "content": message.content}
