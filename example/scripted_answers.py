from __future__ import annotations

import asyncio

from capability_approval import (
    DecisionSymbol,
    PermissionContext,
    check_env,
    check_read,
    parse_response,
)
from capability_approval.testing import ScriptedEngine


def prompt_user(message: str) -> str:
    return input(f"{message}? [y]es / [n]o / [A]ll: ").strip()


def answering_presenter(prompt):
    class AnsweringPresenter:
        def __init__(self, handle):
            self.handle = handle
            self.message = handle.prompt_message
            self.visible = False

        def set_message(self, text: str) -> None:
            self.message = text

        def open(self, visible: bool) -> None:
            self.visible = visible
            if visible:
                asyncio.get_running_loop().call_soon(self._answer)

        def _answer(self) -> None:
            if not self.visible:
                return
            decision = parse_response(prompt(self.message)) or DecisionSymbol.DENY
            self.handle.record_decision(decision)

    return AnsweringPresenter


async def main(context: PermissionContext) -> list:
    return [
        await check_read(context, "/etc/hosts", "readFile"),
        await check_read(context, "/etc/passwd", "readFile"),
        await check_env(context, "HOME", "env.get"),
    ]


engine = ScriptedEngine()
context = PermissionContext(engine, presenter_factory=answering_presenter(prompt_user))

if __name__ == "__main__":
    for outcome in asyncio.run(main(context)):
        print(outcome.code, outcome.message)
