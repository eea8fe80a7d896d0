"""Gemini Provider 适配器（OpenAI 兼容端点）。"""

from study_core.providers.openai_compat import OpenAICompatibleClient
from study_core.providers.registry import GEMINI_CONFIG


class GeminiClient(OpenAICompatibleClient):
    name = "gemini"
    config = GEMINI_CONFIG
    api_key_field = "gemini_api_key"
    base_url_field = "gemini_base_url"
