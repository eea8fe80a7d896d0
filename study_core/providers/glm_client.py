"""GLM / BigModel Provider 适配器。"""

from study_core.providers.openai_compat import OpenAICompatibleClient
from study_core.providers.registry import GLM_CONFIG


class GlmClient(OpenAICompatibleClient):
    name = "glm"
    config = GLM_CONFIG
    api_key_field = "glm_api_key"
    base_url_field = "glm_base_url"
