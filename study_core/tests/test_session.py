import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from study_core.domain.conversation import Message, create_message
from study_core.domain.exceptions import ApiError, SessionBusyError
from study_core.session.controller import ChatSession


class Reply:
    def __init__(self, text):
        self.text = text


def make_session(responder, observer=None, initial=(), params=None, captured=None):
    def build_request(user_text, history, p):
        req = {"question": user_text, "history": list(history), "params": p}
        if captured is not None:
            captured.append(req)
        return req

    return ChatSession(
        responder=responder,
        build_request=build_request,
        extract_text=lambda reply: reply.text,
        initial_messages=initial,
        params=params,
        on_new_assistant_content=observer,
    )


@pytest.mark.asyncio
async def test_submit_appends_user_and_assistant():
    async def responder(req):
        return Reply("  hello\n\n\n\nthere  ")

    seen = []
    seed = [create_message("assistant", "Welcome!")]
    session = make_session(responder, observer=lambda text, reply: seen.append((text, reply)), initial=seed)
    before = session.get_messages()

    await session.submit("hi")

    msgs = session.get_messages()
    assert len(msgs) == len(before) + 2
    assert msgs[0] == before[0]
    assert [m.role for m in msgs[1:]] == ["user", "assistant"]
    assert msgs[1].content == "hi"
    assert msgs[2].content == "hello\n\nthere"
    assert session.error is None
    assert not session.is_busy
    assert len(seen) == 1
    assert seen[0][0] == "hello\n\nthere"
    assert isinstance(seen[0][1], Reply)


@pytest.mark.asyncio
async def test_request_built_from_full_history_and_params():
    captured = []

    async def responder(req):
        return Reply("answer " + req["question"])

    params = object()
    session = make_session(responder, params=params, captured=captured)
    await session.submit("first")
    await session.submit("second")

    last = captured[-1]
    assert last["params"] is params
    assert [m.content for m in last["history"]] == ["first", "answer first", "second"]


@pytest.mark.asyncio
async def test_concurrent_submit_rejected():
    gate = asyncio.Event()

    async def responder(req):
        await gate.wait()
        return Reply("done")

    session = make_session(responder)
    first = asyncio.create_task(session.submit("one"))
    await asyncio.sleep(0)
    assert session.is_busy

    with pytest.raises(SessionBusyError) as exc_info:
        await session.submit("two")
    assert exc_info.value.code == "SESSION_BUSY"
    assert [m.content for m in session.get_messages()] == ["one"]

    gate.set()
    await first
    assert not session.is_busy
    assert [m.content for m in session.get_messages()] == ["one", "done"]


@pytest.mark.asyncio
async def test_responder_failure_appends_system_message():
    async def responder(req):
        raise RuntimeError("boom")

    seen = []
    session = make_session(responder, observer=lambda *a: seen.append(a))
    await session.submit("hi")

    msgs = session.get_messages()
    assert [m.role for m in msgs] == ["user", "system"]
    assert msgs[1].content == "Error: boom"
    assert session.error == "boom"
    assert not session.is_busy
    assert seen == []


@pytest.mark.asyncio
async def test_business_error_message_is_used():
    async def responder(req):
        raise ApiError(code="API_ERROR", message="quota exceeded", http_status=403)

    session = make_session(responder)
    await session.submit("hi")
    assert session.get_messages()[-1].content == "Error: quota exceeded"


@pytest.mark.asyncio
async def test_error_without_message_gets_generic_text():
    async def responder(req):
        raise RuntimeError()

    session = make_session(responder)
    await session.submit("hi")
    assert session.error == "An unexpected error occurred."


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [None, Reply(None), Reply(""), Reply("  \n \n")])
async def test_empty_reply_is_a_failure(reply):
    async def responder(req):
        return reply

    seen = []
    session = make_session(responder, observer=lambda *a: seen.append(a))
    await session.submit("hi")

    msgs = session.get_messages()
    assert [m.role for m in msgs] == ["user", "system"]
    assert msgs[1].content.startswith("Error: ")
    assert session.error
    assert seen == []


@pytest.mark.asyncio
async def test_session_usable_after_failure():
    replies = iter([RuntimeError("boom"), Reply("fine")])

    async def responder(req):
        item = next(replies)
        if isinstance(item, Exception):
            raise item
        return item

    session = make_session(responder)
    await session.submit("one")
    assert session.error == "boom"
    await session.submit("two")
    assert session.error is None
    assert [m.role for m in session.get_messages()] == ["user", "system", "user", "assistant"]


@pytest.mark.asyncio
async def test_reset_clears_messages_and_error():
    async def responder(req):
        raise RuntimeError("boom")

    session = make_session(responder)
    await session.submit("hi")
    assert session.error == "boom"

    session.reset([])
    assert session.get_messages() == ()
    assert session.error is None
    assert not session.is_busy


@pytest.mark.asyncio
async def test_reply_after_reset_is_discarded():
    gate = asyncio.Event()
    seen = []

    async def responder(req):
        await gate.wait()
        return Reply("stale")

    session = make_session(responder, observer=lambda *a: seen.append(a))
    first = asyncio.create_task(session.submit("old document"))
    await asyncio.sleep(0)

    seed = [create_message("assistant", "New document loaded")]
    session.reset(seed)
    assert not session.is_busy

    gate.set()
    await first
    assert [m.content for m in session.get_messages()] == ["New document loaded"]
    assert seen == []


@pytest.mark.asyncio
async def test_timestamps_never_decrease():
    async def responder(req):
        return Reply("ok")

    future = datetime.now(timezone.utc) + timedelta(hours=1)
    session = make_session(responder, initial=[Message(role="assistant", content="seed", created_at=future)])
    await session.submit("hi")

    stamps = [m.created_at for m in session.get_messages()]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_get_messages_is_a_snapshot():
    async def responder(req):
        return Reply("ok")

    session = make_session(responder)
    snapshot = session.get_messages()
    await session.submit("hi")
    assert snapshot == ()
    assert len(session.get_messages()) == 2
