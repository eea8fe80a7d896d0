"""Minimal demonstration of a study chat session followed by a refinement session."""

import asyncio

from study_core import create_chat_session, create_refinement_session
from study_core.api.service import run_process_text

NOTES = "Mitochondria are organelles that produce ATP through cellular respiration."


async def main() -> None:
    chat = create_chat_session(notes=NOTES)
    await chat.submit("What do mitochondria do?")
    for msg in chat.get_messages():
        print(f"{msg.role}: {msg.content}")

    first = await run_process_text(NOTES, mode="simplify", format="bullet_points")
    print(first["generated_heading"])
    print(first["processed_text"])

    refine = create_refinement_session(
        NOTES,
        mode="simplify",
        format="bullet_points",
        previous_heading=first["generated_heading"],
        previous_body=first["processed_text"],
    )
    await refine.submit("make it shorter")
    print(refine.get_messages()[-1].content)


if __name__ == "__main__":
    asyncio.run(main())
