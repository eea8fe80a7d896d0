"""领域层模型与协议。

包含：
- models: Provider 之间共享的 ChatMessage / ChatRequest / ChatResult 模型。
- conversation: 学习会话中的 Message 模型（user/assistant/system）。
- exceptions: 业务异常类型定义。
"""
