"""Kimi / Moonshot Provider 适配器。"""

from study_core.providers.openai_compat import OpenAICompatibleClient
from study_core.providers.registry import KIMI_CONFIG


class KimiClient(OpenAICompatibleClient):
    name = "kimi"
    config = KIMI_CONFIG
    api_key_field = "kimi_api_key"
    base_url_field = "kimi_base_url"
