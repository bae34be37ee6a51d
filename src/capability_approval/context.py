"""PermissionContext: runtime state shared by all capability checks.

This module provides PermissionContext, which records the human's last
decision, owns the active prompt and the notification sink, and holds the
registered presentation factories. One context is created at startup and
passed to every check.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .presenters import AutoPresenter, ConsoleNotificationSink, ConsolePresenter
from .protocol import (
    CapabilityEngine,
    DecisionPresenter,
    NotificationSink,
    NotificationSinkFactory,
    PresenterFactory,
)
from .types import (
    ConfigurationError,
    DecisionSymbol,
    EngineError,
    PromptUpdate,
    parse_decision,
)

logger = logging.getLogger(__name__)

# 10kB of permission prompting should be enough for anyone
MAX_PROMPT_LENGTH = 10 * 1024


class CheckerConfig(BaseModel):
    """Settings for a PermissionContext.

    Attributes:
        poll_interval: Seconds between retries of a pending check
        max_prompt_length: Longer prompts are denied without being shown
        mode: Default presenter when none is registered:
            - interactive: ask on the console
            - approve_all: allow every request (for testing)
            - strict: deny every request (for CI/production safety)
    """

    poll_interval: float = Field(default=0.2, gt=0)
    max_prompt_length: int = Field(default=MAX_PROMPT_LENGTH, gt=0)
    mode: Literal["interactive", "approve_all", "strict"] = "interactive"


def _check_factory(factory: Any, what: str) -> None:
    if factory is None:
        raise ConfigurationError(f"invalid {what} factory: None")
    if not callable(factory):
        raise ConfigurationError(f"invalid {what} factory: {factory!r} is not callable")


class PermissionContext:
    """Shared state between capability checks and the presentation layer.

    Tracks one decision cycle at a time:

    - **Idle**: no prompt open, no decision recorded
    - **Awaiting decision**: a check is pending and the prompt is open
    - **Resolved**: a decision is recorded and waits to be consumed

    Example:
        ctx = PermissionContext(engine, config=CheckerConfig(mode="strict"))
        ctx.register_decision_presenter(MyDialog)
        outcome = await check_read(ctx, "/etc/hosts", "readFile")

    Presenter and sink factories are called with the context itself, which
    serves as their PresenterHandle.
    """

    def __init__(
        self,
        engine: Optional[CapabilityEngine] = None,
        *,
        config: Optional[CheckerConfig] = None,
        presenter_factory: Optional[PresenterFactory] = None,
        sink_factory: Optional[NotificationSinkFactory] = None,
    ):
        """Initialize the context.

        Args:
            engine: Permission engine consulted by the check functions
            config: Settings; defaults to CheckerConfig()
            presenter_factory: Overrides the mode's default presenter
            sink_factory: Overrides the console notification sink
        """
        self.engine = engine
        self.config = config or CheckerConfig()
        self._presenter_factory: PresenterFactory = (
            presenter_factory or self._default_presenter_factory()
        )
        self._sink_factory: NotificationSinkFactory = sink_factory or ConsoleNotificationSink
        for factory, what in ((self._presenter_factory, "presenter"), (self._sink_factory, "sink")):
            _check_factory(factory, what)

        self._pending_decision: Optional[DecisionSymbol] = None
        self._awaiting = False
        self._presenter: Optional[DecisionPresenter] = None
        self._sink: Optional[NotificationSink] = None
        self._prompt_message = ""
        self._prompt_revision = 0
        self._decision_slot = asyncio.Lock()
        self._slot_loop: Optional[asyncio.AbstractEventLoop] = None

    def _default_presenter_factory(self) -> PresenterFactory:
        if self.config.mode == "approve_all":
            return lambda handle: AutoPresenter(handle, DecisionSymbol.ALLOW)
        if self.config.mode == "strict":
            return lambda handle: AutoPresenter(handle, DecisionSymbol.DENY)
        return ConsolePresenter

    @property
    def pending_decision(self) -> Optional[DecisionSymbol]:
        """Decision recorded but not yet consumed by a check."""
        return self._pending_decision

    @property
    def is_awaiting_decision(self) -> bool:
        """True while a check is blocked on the human."""
        return self._awaiting

    @property
    def active_presenter(self) -> Optional[DecisionPresenter]:
        return self._presenter

    @property
    def prompt_message(self) -> str:
        return self._prompt_message

    @property
    def prompt_revision(self) -> int:
        """Incremented on every prompt text change."""
        return self._prompt_revision

    @property
    def decision_slot(self) -> asyncio.Lock:
        """Held by the one check allowed to await a decision.

        A fresh lock is made for each event loop the context is used from,
        since an asyncio.Lock cannot be shared across loops. Outside a
        running loop the current lock is returned.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._decision_slot
        if loop is not self._slot_loop:
            self._decision_slot = asyncio.Lock()
            self._slot_loop = loop
        return self._decision_slot

    # Registration

    def register_decision_presenter(self, factory: PresenterFactory) -> None:
        """Replace the presenter factory.

        Takes effect the next time a prompt has to be created.

        Raises:
            ConfigurationError: If factory is None or not callable
        """
        _check_factory(factory, "presenter")
        self._presenter_factory = factory

    def register_notification_sink(self, factory: NotificationSinkFactory) -> None:
        """Replace the notification sink factory.

        Raises:
            ConfigurationError: If factory is None or not callable
        """
        _check_factory(factory, "sink")
        self._sink_factory = factory
        self._sink = None

    # Decision cycle

    def request_decision(self, message: str) -> None:
        """Ask the human for a decision, reusing the open prompt if any.

        An empty message keeps the current prompt text.
        """
        size = len(message.encode())
        if size > self.config.max_prompt_length:
            logger.warning(
                "Permission prompt length (%d bytes) was larger than the configured "
                "maximum length (%d bytes): denying request.",
                size,
                self.config.max_prompt_length,
            )
            logger.warning(
                "This may indicate that code is trying to bypass or hide permission check requests."
            )
            self.record_decision(DecisionSymbol.DENY)
            return

        if message:
            self.set_prompt_message(message)
        if self._presenter is None:
            self._presenter = self._create_presenter()
            if self._prompt_message:
                self._presenter.set_message(self._prompt_message)
            logger.info("Prompting for decision: %s", self._prompt_message)
        self._awaiting = True
        self._presenter.open(True)

    def record_decision(self, symbol: Union[DecisionSymbol, str]) -> None:
        """Store the human's answer and close the prompt.

        Raises:
            ConfigurationError: If symbol is not allow, deny or allow-always
        """
        decision = parse_decision(symbol)
        self._pending_decision = decision
        presenter, self._presenter = self._presenter, None
        self._awaiting = False
        if presenter is not None:
            presenter.open(False)
        logger.info("Decision recorded: %s (%s)", decision.value, self._prompt_message)

    def consume_decision(self) -> Optional[DecisionSymbol]:
        """Return the recorded decision and clear it."""
        decision, self._pending_decision = self._pending_decision, None
        return decision

    def withdraw_request(self) -> None:
        """Close the prompt without a decision."""
        presenter, self._presenter = self._presenter, None
        self._awaiting = False
        if presenter is not None:
            presenter.open(False)
            logger.debug("Prompt withdrawn: %s", self._prompt_message)

    def _create_presenter(self) -> DecisionPresenter:
        presenter = self._presenter_factory(self)
        if not isinstance(presenter, DecisionPresenter):
            raise ConfigurationError(
                f"presenter factory returned {type(presenter).__name__}, "
                "which does not implement open() and set_message()"
            )
        return presenter

    # Prompt text

    def set_prompt_message(self, text: str) -> None:
        """Change the prompt text, updating the open prompt if any."""
        self._prompt_message = text
        self._prompt_revision += 1
        if self._presenter is not None:
            self._presenter.set_message(text)

    def apply_prompt_update(self, payload: Union[str, bytes, Mapping[str, Any]]) -> None:
        """Apply an out-of-band prompt update such as {"dlg_html": "<b>Allow?</b>"}.

        Raises:
            EngineError: If the payload is not a JSON object
        """
        try:
            if isinstance(payload, (str, bytes)):
                update = PromptUpdate.model_validate_json(payload)
            else:
                update = PromptUpdate.model_validate(payload)
        except ValidationError as exc:
            raise EngineError(f"invalid prompt update: {exc}") from exc

        if update.dlg_html is not None:
            self.set_prompt_message(update.dlg_html)

    # Notifications

    def notify(self, text: str, is_success: bool, *, pending: bool = False) -> None:
        """Show a transient status message.

        Args:
            text: Message to show
            is_success: Styles the message as success or failure
            pending: The message is chatter about a pending check; it is
                dropped while a prompt is open
        """
        if pending and self._awaiting:
            logger.debug("Suppressed notification while awaiting decision: %s", text)
            return
        self._get_sink().show(text, is_success)

    def _get_sink(self) -> NotificationSink:
        if self._sink is None:
            sink = self._sink_factory(self)
            if not isinstance(sink, NotificationSink):
                raise ConfigurationError(
                    f"sink factory returned {type(sink).__name__}, which does not implement show()"
                )
            self._sink = sink
        return self._sink
