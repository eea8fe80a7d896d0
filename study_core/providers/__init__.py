"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供 OpenAI 兼容协议的通用实现 (openai_compat) 及各厂商子类。
"""

from typing import Optional

from study_core.config.settings import settings
from study_core.domain.exceptions import ValidationError
from study_core.providers.base import ProviderClient
from study_core.providers.gemini_client import GeminiClient
from study_core.providers.glm_client import GlmClient
from study_core.providers.kimi_client import KimiClient


_CLIENTS = {
    "gemini": GeminiClient,
    "kimi": KimiClient,
    "glm": GlmClient,
}


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    provider_name = (name or getattr(settings, "default_provider", "gemini")).lower()
    client_cls = _CLIENTS.get(provider_name)
    if client_cls is None:
        raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {provider_name!r}")
    return client_cls(settings)
