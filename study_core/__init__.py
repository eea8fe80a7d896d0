"""Study Core 顶层包。

该包提供学习助手的核心实现，
包括配置加载、领域模型、Provider 适配、提示词模板、
学习流程（笔记问答、文本处理与精修）、模型输出规范化与会话控制。
"""

from study_core.api.service import create_chat_session, create_refinement_session
from study_core.session.controller import ChatSession
from study_core.text.normalizer import normalize

__all__ = ["ChatSession", "create_chat_session", "create_refinement_session", "normalize"]
