import json

import pytest

from study_core.api.service import (
    create_chat_session,
    create_refinement_session,
    run_process_text,
    run_study_chat,
)
from study_core.domain.conversation import create_message
from study_core.domain.exceptions import RateLimitError
from study_core.domain.models import ChatChoice, ChatMessage, ChatResult
from study_core.flows.schemas import ProcessTextOutput, StudyChatOutput


class FakeProvider:
    """按顺序返回预设回复的 Provider。"""

    name = "fake"

    def __init__(self, *contents):
        self._contents = list(contents)
        self.requests = []

    async def chat(self, req):
        self.requests.append(req)
        item = self._contents.pop(0)
        if isinstance(item, Exception):
            raise item
        msg = ChatMessage(role="assistant", content=item)
        return ChatResult(provider="fake", model=req.model, choices=[ChatChoice(index=0, message=msg)], usage=None, raw={})


def processed(heading, body):
    return json.dumps({"generated_heading": heading, "processed_text": body})


@pytest.mark.asyncio
async def test_refinement_session_forwards_previous_output(monkeypatch):
    provider = FakeProvider(processed("X2", "Y2"))
    session = create_refinement_session(
        text="long notes",
        mode="simplify",
        format="bullet_points",
        previous_heading="X",
        previous_body="Y",
        provider=provider,
    )

    seen_requests = []
    original = session._responder

    async def spy(data):
        seen_requests.append(data)
        return await original(data)

    monkeypatch.setattr(session, "_responder", spy)
    await session.submit("make it shorter")

    data = seen_requests[0]
    assert data.previous_heading == "X"
    assert data.previous_processed_text == "Y"
    assert data.refinement_instruction == "make it shorter"
    assert "make it shorter" in provider.requests[0].messages[0].content


@pytest.mark.asyncio
async def test_refinement_state_advances_after_success():
    provider = FakeProvider(processed("Heading 2", "Body 2"), processed("Heading 3", "Body 3"))
    seen = []
    session = create_refinement_session(
        text="notes",
        mode="summarize",
        format="story_format",
        previous_heading="Heading 1",
        previous_body="Body 1",
        provider=provider,
        on_new_assistant_content=lambda text, reply: seen.append((text, reply)),
    )

    await session.submit("shorter")
    await session.submit("simpler")

    assert session.params.refinement.previous_heading == "Heading 3"
    assert session.params.refinement.previous_body == "Body 3"
    second_prompt = provider.requests[1].messages[0].content
    assert "<strong>Heading 2</strong>" in second_prompt
    assert "Body 2" in second_prompt
    assert [text for text, _ in seen] == ["Body 2", "Body 3"]
    assert isinstance(seen[0][1], ProcessTextOutput)
    assert [m.role for m in session.get_messages()] == ["user", "assistant", "user", "assistant"]


@pytest.mark.asyncio
async def test_refinement_state_unchanged_after_failure():
    provider = FakeProvider(RateLimitError(code="RATE_LIMIT", message="fake rate limit", http_status=429))
    session = create_refinement_session(
        text="notes",
        mode="simplify",
        format="bullet_points",
        previous_heading="X",
        previous_body="Y",
        provider=provider,
    )
    await session.submit("make it shorter")

    assert session.error == "fake rate limit"
    assert session.get_messages()[-1].content == "Error: fake rate limit"
    assert session.params.refinement.previous_heading == "X"
    assert session.params.refinement.previous_body == "Y"


@pytest.mark.asyncio
async def test_chat_session_sends_notes_and_history():
    provider = FakeProvider(json.dumps({"answer": "Cells are units of life."}), json.dumps({"answer": "Yes."}))
    welcome = create_message("assistant", "Ask me about your notes.")
    answers = []
    session = create_chat_session(
        notes="Cell theory notes",
        provider=provider,
        initial_messages=[welcome],
        on_new_assistant_content=lambda text, reply: answers.append(reply),
    )

    await session.submit("What are cells?")
    await session.submit("Really?")

    second_prompt = provider.requests[1].messages[0].content
    assert "Notes:\nCell theory notes" in second_prompt
    assert "AI: Ask me about your notes.\nUser: What are cells?\nAI: Cells are units of life." in second_prompt
    assert "Current Question:\nReally?" in second_prompt
    assert [m.content for m in session.get_messages()][-1] == "Yes."
    assert all(isinstance(a, StudyChatOutput) for a in answers)


@pytest.mark.asyncio
async def test_chat_session_invalid_reply_becomes_error_entry():
    session = create_chat_session(provider=FakeProvider("oops"))
    await session.submit("hi")
    last = session.get_messages()[-1]
    assert last.role == "system"
    assert last.content.startswith("Error: The model reply did not match StudyChatOutput")


@pytest.mark.asyncio
async def test_run_study_chat():
    provider = FakeProvider(json.dumps({"answer": "42"}))
    result = await run_study_chat(
        "What is the answer?",
        chat_history=[{"role": "user", "content": "hello"}],
        provider=provider,
    )
    assert result == {"answer": "42"}
    assert "User: hello" in provider.requests[0].messages[0].content


@pytest.mark.asyncio
async def test_run_process_text():
    provider = FakeProvider(processed(" Title ", "a\n\n\n\nb"))
    result = await run_process_text("text", "simplify", "bullet_points", provider=provider)
    assert result == {"generated_heading": "Title", "processed_text": "a\n\nb"}


@pytest.mark.asyncio
async def test_run_process_text_propagates_errors():
    provider = FakeProvider(RateLimitError(code="RATE_LIMIT", message="slow down", http_status=429))
    with pytest.raises(RateLimitError):
        await run_process_text("text", "simplify", "bullet_points", provider=provider)
