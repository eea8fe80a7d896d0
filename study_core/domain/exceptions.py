"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或 UI 层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "EMPTY_REPLY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 session_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，会话层不做自动重试。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class EmptyReplyError(BusinessError):
    """Responder 正常返回，但主文本字段缺失、为空或无法解析。"""


class SessionBusyError(BusinessError):
    """会话已有请求在处理中时再次 submit。"""

    def __init__(self, message: str = "A request is already in progress", **extra):
        super().__init__(code="SESSION_BUSY", message=message, http_status=409, **extra)
