"""Core capability-check types.

This module defines the fundamental data types for the capability approval system:
- CheckCode: Result codes reported by the check primitive
- CheckResult: One raw check result, owning a native resource
- CheckOutcome: Final (code, message) pair returned to facade callers
- DecisionSymbol: The human's answer to a prompt
- PromptUpdate: Out-of-band prompt text payload
- CapabilityError: Base exception carrying an error kind
- parse_decision / parse_response: Helpers turning user input into decisions
"""
from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "success"


class CheckCode(IntEnum):
    """Codes with a fixed meaning. Engines may return any other integer."""

    SUCCESS = 0
    PENDING = 255
    FAILED = -1
    PARAMETER_ERROR = -2


class CheckResult:
    """Result of one call into the check primitive.

    Each result owns a native resource that must be released exactly once.
    Use it as a context manager so the release happens on every exit path:

        with invoker.invoke() as result:
            code, message = result.code, result.message

    Attributes:
        code: Result code (see CheckCode)
        message: Optional human-readable message
    """

    def __init__(
        self,
        code: int,
        message: Optional[str] = None,
        release: Optional[Callable[[], None]] = None,
    ) -> None:
        self._code = int(code)
        self._message = message
        self._release_hook = release
        self._released = False

    @property
    def code(self) -> int:
        self._ensure_live()
        return self._code

    @property
    def message(self) -> Optional[str]:
        self._ensure_live()
        return self._message

    @property
    def is_pending(self) -> bool:
        return self.code == CheckCode.PENDING

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Release the native resource.

        Safe to call more than once; the release hook only ever runs once.
        Failures of the hook are logged and not raised.
        """
        if self._released:
            return
        self._released = True
        hook, self._release_hook = self._release_hook, None
        if hook is None:
            return
        try:
            hook()
        except Exception:
            logger.warning("Failed to release check result (code=%s)", self._code, exc_info=True)

    def _ensure_live(self) -> None:
        if self._released:
            raise ValueError("CheckResult has already been released")

    def __enter__(self) -> "CheckResult":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"CheckResult(code={self._code}, message={self._message!r}, {state})"


class CheckOutcome(BaseModel):
    """Final result of a capability check.

    A non-success code is not an error: the operation was checked and denied.

    Attributes:
        code: 0 on success, otherwise an engine-defined denial/error code
        message: Engine message, or "success" when the engine gave none
    """

    model_config = ConfigDict(frozen=True)

    code: int
    message: str = DEFAULT_MESSAGE

    @property
    def is_success(self) -> bool:
        return self.code == CheckCode.SUCCESS

    @property
    def is_pending(self) -> bool:
        return self.code == CheckCode.PENDING


class DecisionSymbol(str, Enum):
    """The human's answer to a permission prompt."""

    ALLOW = "allow"
    DENY = "deny"
    ALWAYS_ALLOW = "always_allow"


# Single-key answers accepted from prompt buttons and terminals
_KEY_DECISIONS = {
    "y": DecisionSymbol.ALLOW,
    "Y": DecisionSymbol.ALLOW,
    "n": DecisionSymbol.DENY,
    "N": DecisionSymbol.DENY,
    "A": DecisionSymbol.ALWAYS_ALLOW,
}


class PromptUpdate(BaseModel):
    """Out-of-band update of the active prompt's text.

    Attributes:
        dlg_html: Literal text/markup to display in the prompt
    """

    model_config = ConfigDict(extra="ignore")

    dlg_html: Optional[str] = None


class CapabilityError(Exception):
    """Base exception for capability approval failures."""

    kind: str = "capability"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CapabilityError):
    """Invalid registration, decision symbol or context setup."""

    kind = "configuration"


class EngineError(CapabilityError):
    """The check primitive itself failed (as opposed to denying access)."""

    kind = "engine"


class CheckCancelled(CapabilityError):
    """A check was cancelled before the engine reached a decision."""

    kind = "cancelled"


def parse_decision(value: Union[DecisionSymbol, str]) -> DecisionSymbol:
    """Validate a decision symbol.

    Accepts DecisionSymbol members, their values, and the single-key answers
    y/Y (allow), n/N (deny) and A (allow always).

    Raises:
        ConfigurationError: If the value is not a legal decision
    """
    if isinstance(value, DecisionSymbol):
        return value
    if isinstance(value, str):
        if value in _KEY_DECISIONS:
            return _KEY_DECISIONS[value]
        try:
            return DecisionSymbol(value)
        except ValueError:
            pass
    raise ConfigurationError(f"Invalid decision {value!r}: must be one of y, n, A")


def parse_response(text: str, allow_all: bool = True) -> Optional[DecisionSymbol]:
    """Interpret a typed answer by its first character.

    Returns None for anything unrecognized so the caller can ask again.
    """
    if not text:
        return None
    key = text[0]
    if key in ("y", "Y"):
        return DecisionSymbol.ALLOW
    if key in ("n", "N", "\x1b"):
        return DecisionSymbol.DENY
    if key == "A" and allow_all:
        return DecisionSymbol.ALWAYS_ALLOW
    return None
