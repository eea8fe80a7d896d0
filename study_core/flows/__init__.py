"""学习流程：study_chat（笔记问答）与 process_text（简化/总结/问答生成及精修）。"""

from study_core.flows.schemas import (
    ProcessTextInput,
    ProcessTextOutput,
    ProcessTextParams,
    RefinementState,
    StudyChatInput,
    StudyChatOutput,
    StudyChatParams,
)

__all__ = [
    "ProcessTextInput",
    "ProcessTextOutput",
    "ProcessTextParams",
    "RefinementState",
    "StudyChatInput",
    "StudyChatOutput",
    "StudyChatParams",
]
