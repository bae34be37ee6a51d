"""YieldPoller: turns a pending-capable check into one awaitable result.

The check primitive never blocks. When it needs a human decision it reports
CheckCode.PENDING and expects to be called again later. The poller repeats
the call until the engine gives a definitive answer, asking the context for
a decision in between.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .context import PermissionContext
from .invoker import CheckInvoker
from .types import DEFAULT_MESSAGE, CheckCancelled, CheckCode, CheckOutcome, DecisionSymbol

logger = logging.getLogger(__name__)


class YieldPoller:
    """Drive a CheckInvoker to a non-pending result.

    Only one check at a time may wait for a decision. A check that turns
    pending while another one holds the prompt queues behind it and, once
    its turn comes, repeats its call before prompting: the earlier decision
    may already cover it (e.g. "allow all").

    Example:
        poller = YieldPoller(ctx)
        outcome = await poller.poll(CheckInvoker(engine.check_env, "HOME", "env"))
    """

    def __init__(
        self,
        context: PermissionContext,
        interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the poller.

        Args:
            context: Shared decision state
            interval: Seconds between retries; defaults to the context's
                poll_interval
            sleep: Coroutine used for the retry wait
        """
        self._context = context
        self.interval = interval if interval is not None else context.config.poll_interval
        self._sleep = sleep

    async def poll(
        self,
        invoker: CheckInvoker,
        prompt: str = "",
        cancel: Optional[asyncio.Event] = None,
    ) -> CheckOutcome:
        """Invoke until the engine returns a definitive code.

        Args:
            invoker: The check to run
            prompt: Prompt text used when the engine gives none
            cancel: Set to abandon the check at its next wait

        Returns:
            CheckOutcome; never a pending one

        Raises:
            EngineError: If the engine fails; not retried
            CheckCancelled: If cancel is set before the engine decides
        """
        slot = self._context.decision_slot
        holding = False
        decision: Optional[DecisionSymbol] = None
        retries = 0
        try:
            while True:
                self._raise_if_cancelled(cancel, invoker)
                revision = self._context.prompt_revision
                with invoker.invoke(decision) as result:
                    code, message = result.code, result.message
                decision = None

                if code != CheckCode.PENDING:
                    logger.debug("%r resolved with code %s after %d retries", invoker, code, retries)
                    if message is None:
                        message = DEFAULT_MESSAGE
                    return CheckOutcome(code=code, message=message)

                if not holding:
                    queued = slot.locked()
                    if queued:
                        logger.debug("%r queued behind an open prompt", invoker)
                    await slot.acquire()
                    holding = True
                    if queued:
                        continue

                # Keep prompt text the engine pushed itself during the call
                fallback = prompt if self._context.prompt_revision == revision else ""
                self._await_decision(message, fallback)
                retries += 1
                await self._wait(cancel, invoker)
                decision = self._context.consume_decision()
        finally:
            if holding:
                if self._context.is_awaiting_decision:
                    self._context.withdraw_request()
                self._context.consume_decision()
                slot.release()

    def _await_decision(self, message: Optional[str], fallback: str) -> None:
        context = self._context
        if context.is_awaiting_decision:
            if message is not None and message != context.prompt_message:
                context.set_prompt_message(message)
        elif context.pending_decision is None:
            context.request_decision(message if message is not None else fallback)

    async def _wait(self, cancel: Optional[asyncio.Event], invoker: CheckInvoker) -> None:
        if cancel is None:
            await self._sleep(self.interval)
            return
        sleeper = asyncio.ensure_future(self._sleep(self.interval))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        self._raise_if_cancelled(cancel, invoker)
        if sleeper.done() and not sleeper.cancelled():
            sleeper.result()

    @staticmethod
    def _raise_if_cancelled(cancel: Optional[asyncio.Event], invoker: CheckInvoker) -> None:
        if cancel is not None and cancel.is_set():
            raise CheckCancelled(f"{invoker!r} was cancelled")
