"""Default presenters and notification sink.

Applications usually register their own dialog; these cover terminals,
tests and unattended runs.
"""
from __future__ import annotations

import asyncio
import html
import logging
import re
from typing import Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .protocol import PresenterHandle
from .types import DecisionSymbol, parse_response

logger = logging.getLogger(__name__)

PROMPT_OPTIONS = "[y/n/A] (y = yes, allow; n = no, deny; A = allow all permissions)"
ANSWER_PROMPT = "Allow? > "
REASK_PROMPT = f"┗ Unrecognized option. Allow? {PROMPT_OPTIONS} > "

_FEEDBACK = {
    DecisionSymbol.ALLOW: "Granted {message}.",
    DecisionSymbol.DENY: "Denied {message}.",
    DecisionSymbol.ALWAYS_ALLOW: "Granted {message} and all later requests of its kind.",
}

_TAG = re.compile(r"<[^>]+>")


def strip_markup(text: str) -> str:
    """Drop HTML tags and entities from prompt text for plain-text output."""
    return html.unescape(_TAG.sub("", text))


class LineReader:
    """Blocking line source read in the default executor.

    At most one read is outstanding. A read left blocked by a withdrawn
    prompt is taken over by the next prompt, so the line typed next answers
    the prompt that is actually shown. A read that finished while no prompt
    was waiting is discarded.
    """

    def __init__(self, ask: Callable[[str], str]):
        self._ask = ask
        self._pending: Optional[asyncio.Future] = None

    async def readline(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        pending = self._pending
        if pending is None or pending.done() or pending.get_loop() is not loop:
            if pending is not None and pending.done() and not pending.cancelled():
                pending.exception()
            pending = self._pending = loop.run_in_executor(None, self._ask, prompt)
        try:
            return await asyncio.shield(pending)
        finally:
            if pending.done() and self._pending is pending:
                self._pending = None


def _terminal_input(prompt: str) -> str:
    return Console(stderr=True).input(Text(prompt))


_readers: dict[Callable[[str], str], LineReader] = {}


def line_reader(ask: Optional[Callable[[str], str]] = None) -> LineReader:
    """Return the LineReader shared by every presenter reading from ask.

    Without ask this is the terminal.
    """
    ask = ask or _terminal_input
    reader = _readers.get(ask)
    if reader is None:
        reader = _readers[ask] = LineReader(ask)
    return reader


class ConsolePresenter:
    """Ask for the decision on the terminal.

    The answer is read off the event loop so it keeps running while the
    prompt is open. Unrecognized answers are asked again. Once answered the
    decision is reported through the handle's notifications.

    Args:
        handle: Receives the decision
        console: Rich console to render on (stderr by default)
        ask: Blocking line reader, called with the prompt string
    """

    def __init__(
        self,
        handle: PresenterHandle,
        console: Optional[Console] = None,
        ask: Optional[Callable[[str], str]] = None,
    ):
        self._handle = handle
        self._console = console or Console(stderr=True)
        self._reader = line_reader(ask)
        self._message = handle.prompt_message
        self._visible = False
        self._task: Optional[asyncio.Task] = None

    @property
    def visible(self) -> bool:
        return self._visible

    def set_message(self, text: str) -> None:
        self._message = text
        if self._visible:
            self._render()

    def open(self, visible: bool) -> None:
        if visible == self._visible:
            return
        self._visible = visible
        if visible:
            self._render()
            self._task = asyncio.get_running_loop().create_task(self._read_answer())
            return

        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            # The blocked read is kept for the next prompt
            task.cancel()

    def _render(self) -> None:
        self._console.print(
            Panel(
                Text(strip_markup(self._message)),
                title="⚠️  Permission request",
                subtitle=Text(PROMPT_OPTIONS),
                border_style="yellow",
            )
        )

    async def _read_answer(self) -> None:
        prompt = ANSWER_PROMPT
        while True:
            try:
                answer = (await self._reader.readline(prompt)).strip()
            except EOFError:
                logger.warning("No input available for permission prompt, denying")
                decision = DecisionSymbol.DENY
                break
            decision = parse_response(answer)
            if decision is not None:
                break
            self._handle.notify(f"Unrecognized option {answer!r}", False, pending=True)
            prompt = REASK_PROMPT

        if not self._visible:
            return
        message = strip_markup(self._message)
        self._handle.record_decision(decision)
        self._handle.notify(
            _FEEDBACK[decision].format(message=message),
            decision is not DecisionSymbol.DENY,
        )


class AutoPresenter:
    """Answer every prompt with a fixed decision as soon as it opens."""

    def __init__(self, handle: PresenterHandle, decision: DecisionSymbol):
        self._handle = handle
        self.decision = decision
        self.message = handle.prompt_message

    def set_message(self, text: str) -> None:
        self.message = text

    def open(self, visible: bool) -> None:
        if visible:
            self._handle.record_decision(self.decision)


class ConsoleNotificationSink:
    """Print status messages to the terminal and the log."""

    def __init__(self, handle: Optional[PresenterHandle] = None, console: Optional[Console] = None):
        self._console = console or Console(stderr=True)

    def show(self, text: str, is_success: bool) -> None:
        plain = strip_markup(text)
        if is_success:
            logger.info("%s", plain)
            self._console.print(Text(f"✅ {plain}", style="green"))
        else:
            logger.warning("%s", plain)
            self._console.print(Text(f"❌ {plain}", style="red"))
