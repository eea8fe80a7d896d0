"""学习流程的输入/输出模型。

输入模型描述一次 flow 调用所需的全部信息，输出模型描述模型必须返回的 JSON 结构。
字段说明与提示词中的要求保持一致。
"""

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


ProcessMode = Literal["simplify", "summarize", "generate_qa"]
OutputFormat = Literal["bullet_points", "story_format"]


class HistoryEntry(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class StudyChatInput(BaseModel):
    notes: Optional[str] = Field(
        default=None,
        description="The notes to study. Prioritized if relevant; when absent the assistant answers from general knowledge.",
    )
    question: str = Field(description="The question to ask.")
    chat_history: Optional[List[HistoryEntry]] = Field(
        default=None,
        description="The previous conversation history (user questions and AI answers).",
    )


class StudyChatOutput(BaseModel):
    answer: str = Field(
        description="The answer to the question. All bold text MUST use HTML <strong> tags, not Markdown.",
    )


class ProcessTextInput(BaseModel):
    text: str = Field(description="The text to be processed.")
    mode: ProcessMode = Field(description="The processing mode: simplify, summarize, or generate Q&A.")
    format: OutputFormat = Field(description="The desired output format (bullet_points or story_format).")
    previous_processed_text: Optional[str] = Field(
        default=None,
        description="The previously processed text body, if this is a refinement step.",
    )
    previous_heading: Optional[str] = Field(
        default=None,
        description="The previously generated heading, if this is a refinement step.",
    )
    refinement_instruction: Optional[str] = Field(
        default=None,
        description='The user instruction for refining the text or heading (e.g. "make it shorter").',
    )


class ProcessTextOutput(BaseModel):
    generated_heading: str = Field(
        description="A concise and relevant heading for the processed text, using <strong> tags for emphasis.",
    )
    processed_text: str = Field(
        description="The processed or refined text in the specified format, without excessive newlines.",
    )


@dataclass
class RefinementState:
    """上一轮处理结果，在多轮精修之间原样传递。"""

    previous_heading: Optional[str] = None
    previous_body: Optional[str] = None

    def advance(self, output: ProcessTextOutput) -> None:
        self.previous_heading = output.generated_heading
        self.previous_body = output.processed_text


@dataclass
class ProcessTextParams:
    """process_text 会话的固定参数：原文、模式、格式以及精修状态。"""

    text: str
    mode: ProcessMode
    format: OutputFormat
    refinement: RefinementState


@dataclass
class StudyChatParams:
    notes: Optional[str] = None
