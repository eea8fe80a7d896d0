"""文本处理 flow：简化、总结或生成问答，支持要点/故事两种格式以及多轮精修。

模型同时生成一个标题，所有加粗文本都要求使用 HTML <strong> 标签。
返回的正文会经过 normalize 清理，标题去掉首尾空白。
"""

from typing import Dict, Optional, Sequence, Tuple

from study_core.config.settings import settings
from study_core.domain.conversation import Message
from study_core.domain.models import ChatMessage, ChatRequest
from study_core.flows.schemas import (
    OutputFormat,
    ProcessMode,
    ProcessTextInput,
    ProcessTextOutput,
    ProcessTextParams,
)
from study_core.flows.structured import parse_structured_output
from study_core.prompts import render_prompt
from study_core.providers import create_provider
from study_core.providers.base import ProviderClient
from study_core.text.normalizer import normalize, normalize_heading


# mode -> (mode_verb, mode_prompt_action)
MODE_PHRASES: Dict[str, Tuple[str, str]] = {
    "simplify": ("simplified", "<strong>simplify</strong>"),
    "summarize": ("summarized", "<strong>summarize</strong>"),
    "generate_qa": ("processed for Q&A", "<strong>generate Q&A from</strong>"),
}

FORMAT_DESCRIPTIONS: Dict[str, str] = {
    "bullet_points": "bullet points",
    "story_format": "a story format",
}

CONTENT_INSTRUCTIONS: Dict[Tuple[str, str], str] = {
    ("simplify", "bullet_points"): (
        "Generate <strong>hyper-detailed</strong>, comprehensive, and informative bullet points. "
        "Each main bullet point must be thoroughly explained and significantly detailed, exploring the concept in depth. "
        "Use sub-bullets extensively to break down complex aspects, provide examples, and add layers of information. "
        "The goal is to produce an advanced level of understanding. "
        "Ensure the notes are exceptionally comprehensive and richly informative. "
        "All bold text MUST use <strong> tags. Do not use Markdown."
    ),
    ("simplify", "story_format"): (
        "Create an engaging narrative that explains the core concepts from the text clearly and thoroughly. "
        "Ensure the story is engaging and explains the core concepts clearly. "
        "All bold text MUST use <strong> tags. Do not use Markdown."
    ),
    ("summarize", "bullet_points"): (
        "Generate comprehensive and informative summary bullet points. "
        "Each bullet point should be well-explained and detailed. "
        "Sub-bullets can be used for further detail if it helps clarity and depth. "
        "The summary should be a thorough representation of the original notes. "
        "All bold text MUST use <strong> tags. Do not use Markdown."
    ),
    ("summarize", "story_format"): (
        "Create an engaging narrative that accurately captures the key information and concepts from the notes. "
        "The story should be detailed enough to be informative while remaining coherent and easy to follow. "
        "All bold text MUST use <strong> tags. Do not use Markdown."
    ),
    ("generate_qa", "bullet_points"): (
        "Generate question and answer pairs based on the text. "
        "Format each as a bullet point starting with <strong>Question:</strong> followed by the question, "
        "and on a new line within the same bullet, <strong>Answer:</strong> followed by the answer. "
        "Ensure the questions cover key concepts and the answers are accurate and derived from the text. "
        'All bold text (like "Question:" and "Answer:") MUST use <strong> tags. Do not use Markdown.'
    ),
    ("generate_qa", "story_format"): (
        "Create an engaging narrative that includes questions about the core concepts from the text "
        "and provides their answers within the story. Clearly distinguish questions and answers. "
        "All bold text MUST use <strong> tags. Do not use Markdown."
    ),
}

COMMON_INSTRUCTIONS = (
    "Ensure clarity, accuracy, and appropriate detail. "
    "Remember: ALL bold text MUST use HTML <strong> tags. "
    "DO NOT use Markdown (e.g., **text** or __text__). "
    "Format the output cleanly with minimal unnecessary blank lines."
)


def mode_phrases(mode: ProcessMode) -> Tuple[str, str]:
    return MODE_PHRASES.get(mode, ("processed", "<strong>process</strong>"))


def format_description(fmt: OutputFormat) -> str:
    return FORMAT_DESCRIPTIONS[fmt]


def build_process_text_prompt(data: ProcessTextInput) -> str:
    mode_verb, mode_prompt_action = mode_phrases(data.mode)
    description = format_description(data.format)
    if data.refinement_instruction:
        return render_prompt(
            "process_text_refine",
            text=data.text,
            previous_heading=data.previous_heading or "",
            mode_verb=mode_verb,
            format_description=description,
            previous_processed_text=data.previous_processed_text or "",
            refinement_instruction=data.refinement_instruction,
            common_instructions=COMMON_INSTRUCTIONS,
        )
    return render_prompt(
        "process_text",
        mode_prompt_action=mode_prompt_action,
        format_description=description,
        text=data.text,
        content_instructions=CONTENT_INSTRUCTIONS[(data.mode, data.format)],
        common_instructions=COMMON_INSTRUCTIONS,
    )


def build_process_text_request(
    data: ProcessTextInput,
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> ChatRequest:
    return ChatRequest(
        provider=provider_name or settings.default_provider,
        model=model or settings.default_model,
        messages=[ChatMessage(role="user", content=build_process_text_prompt(data))],
        temperature=settings.temperature,
        response_format="json_object",
    )


async def process_text(
    data: ProcessTextInput,
    provider: Optional[ProviderClient] = None,
    model: Optional[str] = None,
) -> ProcessTextOutput:
    """处理或精修一段文本。

    Args:
        data: 原文、模式、格式，精修时还包括上一轮标题/正文与精修指令
        provider: Provider 客户端（可选，默认按配置创建）
        model: 逻辑模型名（可选）

    Returns:
        标题与正文均已清理的 ProcessTextOutput
    """
    client = provider or create_provider()
    req = build_process_text_request(data, provider_name=client.name, model=model)
    result = await client.chat(req)
    output = parse_structured_output(result.text, ProcessTextOutput)
    return ProcessTextOutput(
        generated_heading=normalize_heading(output.generated_heading),
        processed_text=normalize(output.processed_text),
    )


def build_process_text_input(
    user_text: str,
    history: Sequence[Message],
    params: ProcessTextParams,
) -> ProcessTextInput:
    """会话层的请求构造：用户输入作为精修指令，上一轮结果原样带入。"""

    return ProcessTextInput(
        text=params.text,
        mode=params.mode,
        format=params.format,
        previous_heading=params.refinement.previous_heading,
        previous_processed_text=params.refinement.previous_body,
        refinement_instruction=user_text,
    )
