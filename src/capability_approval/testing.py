"""Test doubles for capability checks.

- ScriptedPrimitive: replays a fixed sequence of check results
- ScriptedEngine: a CapabilityEngine that asks for a decision on first use
- RecordingPresenter / RecordingSink: presentation doubles that keep history
"""
from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Union

from .protocol import PresenterHandle
from .types import CheckCode, CheckResult, DecisionSymbol

Step = Union[int, tuple, BaseException]


class _ReleaseTracking:
    def __init__(self) -> None:
        self.produced = 0
        self.released = 0

    def _result(self, code: int, message: Optional[str] = None) -> CheckResult:
        self.produced += 1
        return CheckResult(code, message, release=self._on_release)

    def _on_release(self) -> None:
        self.released += 1

    @property
    def live(self) -> int:
        """Results produced but not released."""
        return self.produced - self.released


class ScriptedPrimitive(_ReleaseTracking):
    """Check primitive that replays a script.

    Each step is a code, a (code, message) tuple, or an exception to raise.
    The last step repeats once the script is exhausted.

    Example:
        primitive = ScriptedPrimitive([CheckCode.PENDING, (0, "ok")])
        invoker = CheckInvoker(primitive)
    """

    def __init__(self, script: Sequence[Step]):
        super().__init__()
        if not script:
            raise ValueError("script must not be empty")
        self._script = list(script)
        self.calls: list[tuple[tuple[Any, ...], Optional[DecisionSymbol]]] = []

    def __call__(self, *args: Any, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        step = self._script[min(len(self.calls), len(self._script) - 1)]
        self.calls.append((args, decision))
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, tuple):
            return self._result(*step)
        return self._result(step)


class ScriptedEngine(_ReleaseTracking):
    """CapabilityEngine that needs a human decision for everything.

    Checks return PENDING until they are repeated with a decision. ALLOW
    grants that one call, ALWAYS_ALLOW grants the whole capability class
    from then on, DENY fails with CheckCode.FAILED.
    """

    def __init__(self, granted: Iterable[str] = ()):
        super().__init__()
        self.granted = set(granted)
        self.calls: list[tuple[str, str, Optional[DecisionSymbol]]] = []

    def _check(self, kind: str, subject: str, decision: Optional[DecisionSymbol]) -> CheckResult:
        self.calls.append((kind, subject, decision))
        if kind in self.granted:
            return self._result(CheckCode.SUCCESS)
        if decision is None:
            return self._result(CheckCode.PENDING)
        if decision is DecisionSymbol.ALWAYS_ALLOW:
            self.granted.add(kind)
        if decision is DecisionSymbol.DENY:
            return self._result(
                CheckCode.FAILED,
                f'Requires {kind} access to "{subject}", run again with the --allow-{kind} flag',
            )
        return self._result(CheckCode.SUCCESS)

    def check_read(self, path: str, api_name: str, *, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        return self._check("read", path, decision)

    def check_write(self, path: str, api_name: str, *, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        return self._check("write", path, decision)

    def check_net(
        self,
        host: str,
        port: Optional[int],
        api_name: str,
        *,
        decision: Optional[DecisionSymbol] = None,
    ) -> CheckResult:
        subject = host if port is None else f"{host}:{port}"
        return self._check("net", subject, decision)

    def check_net_url(self, url: str, api_name: str, *, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        return self._check("net", url, decision)

    def check_env(self, var_name: str, api_name: str, *, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        return self._check("env", var_name, decision)


class RecordingPresenter:
    """Presenter that only records what it was asked to show.

    Call answer() to play the human.
    """

    def __init__(self, handle: PresenterHandle):
        self.handle = handle
        self.visible = False
        self.messages: list[str] = []
        self.opened = 0

    def open(self, visible: bool) -> None:
        if visible:
            self.opened += 1
        self.visible = visible

    def set_message(self, text: str) -> None:
        self.messages.append(text)

    @property
    def message(self) -> Optional[str]:
        return self.messages[-1] if self.messages else None

    def answer(self, symbol: Union[DecisionSymbol, str]) -> None:
        self.handle.record_decision(symbol)


class RecordingSink:
    """Notification sink that keeps every (text, is_success) pair."""

    def __init__(self, handle: Optional[PresenterHandle] = None):
        self.shown: list[tuple[str, bool]] = []

    def show(self, text: str, is_success: bool) -> None:
        self.shown.append((text, is_success))
