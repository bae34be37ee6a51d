"""Protocols for the check engine and the presentation layer.

The package provides the mechanism (polling, state, registration). The
engine and the UI are supplied by the application through these
interfaces:

- CapabilityEngine: the external permission engine being consulted
- DecisionPresenter: a modal prompt that records the human's decision
- NotificationSink: a transient, fire-and-forget status message
- PresenterHandle: what presenters and sinks receive from the context
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol, Union, runtime_checkable

from .types import CheckResult, DecisionSymbol


@runtime_checkable
class CapabilityEngine(Protocol):
    """External permission engine.

    Every method performs one non-blocking check and returns a CheckResult.
    A result with code CheckCode.PENDING means the engine needs a human
    decision; the same check is then repeated with the recorded decision
    passed as `decision`.

    Example:
        class StaticEngine:
            def check_read(self, path, api_name, *, decision=None):
                return CheckResult(0)
            ...
    """

    def check_read(
        self, path: str, api_name: str, *, decision: Optional[DecisionSymbol] = None
    ) -> CheckResult:
        ...

    def check_write(
        self, path: str, api_name: str, *, decision: Optional[DecisionSymbol] = None
    ) -> CheckResult:
        ...

    def check_net(
        self,
        host: str,
        port: Optional[int],
        api_name: str,
        *,
        decision: Optional[DecisionSymbol] = None,
    ) -> CheckResult:
        ...

    def check_net_url(
        self, url: str, api_name: str, *, decision: Optional[DecisionSymbol] = None
    ) -> CheckResult:
        ...

    def check_env(
        self, var_name: str, api_name: str, *, decision: Optional[DecisionSymbol] = None
    ) -> CheckResult:
        ...


@runtime_checkable
class PresenterHandle(Protocol):
    """Callback surface handed to presenter and sink factories."""

    @property
    def prompt_message(self) -> str:
        """Text of the current prompt."""
        ...

    def record_decision(self, symbol: Union[DecisionSymbol, str]) -> None:
        """Report the human's answer."""
        ...

    def notify(self, text: str, is_success: bool, *, pending: bool = False) -> None:
        """Show a status message; pending chatter is dropped while a prompt is open."""
        ...


@runtime_checkable
class DecisionPresenter(Protocol):
    """Modal prompt asking the human for a decision.

    The presenter shows itself on open(True) and reports the answer through
    the PresenterHandle it was created with. The context calls open(False)
    once a decision has been recorded.
    """

    def open(self, visible: bool) -> None:
        ...

    def set_message(self, text: str) -> None:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Transient status message. No acknowledgement is expected."""

    def show(self, text: str, is_success: bool) -> None:
        ...


# Factories receive the owning context as their handle
PresenterFactory = Callable[[PresenterHandle], DecisionPresenter]
NotificationSinkFactory = Callable[[PresenterHandle], NotificationSink]
