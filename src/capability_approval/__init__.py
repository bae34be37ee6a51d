"""Human-in-the-loop approval for non-blocking capability checks.

This package sits between a permission engine whose checks never block and
the human who has to answer its prompts. When the engine reports that a
decision is pending, the check is repeated at a fixed interval until the
answer is in, and the caller just awaits one result.

Key Components:
    - PermissionContext: Shared decision state, prompt and notification owner
    - check_read / check_write / check_net / check_net_url / check_env: Public checks
    - CheckOutcome: Final (code, message) of a check; denials are outcomes, not errors
    - CheckResult: One raw engine result owning a native resource
    - CheckInvoker: One engine call bound to its arguments
    - YieldPoller: Repeats a pending check until the engine decides
    - DecisionPresenter / NotificationSink: Pluggable presentation protocols
    - CapabilityError: Base exception (ConfigurationError, EngineError, CheckCancelled)

Example with a custom dialog:
    from capability_approval import PermissionContext, check_read

    class MyDialog:
        def __init__(self, handle):
            self.handle = handle  # call handle.record_decision("y") when clicked

        def open(self, visible: bool) -> None:
            ...

        def set_message(self, text: str) -> None:
            ...

    ctx = PermissionContext(my_engine)
    ctx.register_decision_presenter(MyDialog)

    outcome = await check_read(ctx, "/etc/hosts", "readFile")
    if outcome.is_success:
        ...

For testing, use approve-all or strict mode:
    ctx = PermissionContext(engine, config=CheckerConfig(mode="approve_all"))
    ctx = PermissionContext(engine, config=CheckerConfig(mode="strict"))
"""

from .checks import check_env, check_net, check_net_url, check_read, check_write
from .context import CheckerConfig, PermissionContext
from .invoker import CheckInvoker
from .poller import YieldPoller
from .presenters import AutoPresenter, ConsoleNotificationSink, ConsolePresenter
from .protocol import (
    CapabilityEngine,
    DecisionPresenter,
    NotificationSink,
    NotificationSinkFactory,
    PresenterFactory,
    PresenterHandle,
)
from .types import (
    CapabilityError,
    CheckCancelled,
    CheckCode,
    CheckOutcome,
    CheckResult,
    ConfigurationError,
    DecisionSymbol,
    EngineError,
    PromptUpdate,
    parse_decision,
    parse_response,
)

__version__ = "0.1.0"

__all__ = [
    "AutoPresenter",
    "CapabilityEngine",
    "CapabilityError",
    "CheckCancelled",
    "CheckCode",
    "CheckInvoker",
    "CheckOutcome",
    "CheckResult",
    "CheckerConfig",
    "ConfigurationError",
    "ConsoleNotificationSink",
    "ConsolePresenter",
    "DecisionPresenter",
    "DecisionSymbol",
    "EngineError",
    "NotificationSink",
    "NotificationSinkFactory",
    "PermissionContext",
    "PresenterFactory",
    "PresenterHandle",
    "PromptUpdate",
    "YieldPoller",
    "check_env",
    "check_net",
    "check_net_url",
    "check_read",
    "check_write",
    "parse_decision",
    "parse_response",
]
