"""Uniform wrapper around one raw capability-check call."""
from __future__ import annotations

from typing import Any, Callable, Optional

from .types import CapabilityError, CheckResult, DecisionSymbol, EngineError


class CheckInvoker:
    """One capability check, callable any number of times.

    Binds a check primitive to its arguments so the poller can repeat the
    call without knowing which kind of check it is. Each invocation makes
    exactly one call into the primitive; nothing is retried here.

    Example:
        invoker = CheckInvoker(engine.check_read, "/etc/hosts", "Deno.readFile")
        with invoker.invoke() as result:
            print(result.code)
    """

    def __init__(
        self,
        primitive: Callable[..., CheckResult],
        *args: Any,
        name: Optional[str] = None,
    ):
        self._primitive = primitive
        self._args = args
        self.name = name or getattr(primitive, "__name__", "check")

    def invoke(self, decision: Optional[DecisionSymbol] = None) -> CheckResult:
        """Call the primitive once.

        Args:
            decision: Decision recorded since the previous call, if any

        Raises:
            EngineError: If the primitive fails or returns something other
                than a CheckResult
        """
        try:
            result = self._primitive(*self._args, decision=decision)
        except CapabilityError:
            raise
        except Exception as exc:
            raise EngineError(f"{self.name} failed: {exc}") from exc

        if not isinstance(result, CheckResult):
            raise EngineError(
                f"{self.name} must return CheckResult, got {type(result).__name__}"
            )
        return result

    __call__ = invoke

    def __repr__(self) -> str:
        args = ", ".join(repr(arg) for arg in self._args)
        return f"CheckInvoker({self.name}({args}))"
