"""会话控制层。"""

from study_core.session.controller import ChatSession, describe_error

__all__ = ["ChatSession", "describe_error"]
