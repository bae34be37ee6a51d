"""Public capability checks.

One coroutine per capability class. Each builds a CheckInvoker for the
context's engine, polls it to completion and reports denials through the
context's notification sink.

Example:
    ctx = PermissionContext(engine)
    outcome = await check_read(ctx, "/etc/hosts", "Deno.readTextFile")
    if not outcome.is_success:
        print(outcome.code, outcome.message)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import SplitResult, urlsplit

from .context import PermissionContext
from .invoker import CheckInvoker
from .poller import YieldPoller
from .protocol import CapabilityEngine
from .types import CheckCode, CheckOutcome, ConfigurationError

logger = logging.getLogger(__name__)


def _engine(context: PermissionContext) -> CapabilityEngine:
    if context.engine is None:
        raise ConfigurationError("PermissionContext has no engine")
    return context.engine


def _describe(kind: str, subject: str) -> str:
    return f'{kind} access to "{subject}"'


def _split_url(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit(url)
        # raises ValueError unless the port is a number in 0-65535
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts


def _parameter_error(context: PermissionContext, value: str) -> CheckOutcome:
    logger.debug("Rejected malformed check parameter %r", value)
    outcome = CheckOutcome(code=CheckCode.PARAMETER_ERROR, message=f"{value} parameter is invalid.")
    context.notify(outcome.message, False)
    return outcome


async def _run(
    context: PermissionContext,
    invoker: CheckInvoker,
    prompt: str,
    cancel: Optional[asyncio.Event],
) -> CheckOutcome:
    outcome = await YieldPoller(context).poll(invoker, prompt=prompt, cancel=cancel)
    if not outcome.is_success:
        context.notify(outcome.message, False)
    return outcome


async def check_read(
    context: PermissionContext,
    path: str,
    api_name: str,
    *,
    cancel: Optional[asyncio.Event] = None,
) -> CheckOutcome:
    """Check read access to a path."""
    invoker = CheckInvoker(_engine(context).check_read, path, api_name, name="check_read")
    return await _run(context, invoker, _describe("read", path), cancel)


async def check_write(
    context: PermissionContext,
    path: str,
    api_name: str,
    *,
    cancel: Optional[asyncio.Event] = None,
) -> CheckOutcome:
    """Check write access to a path."""
    invoker = CheckInvoker(_engine(context).check_write, path, api_name, name="check_write")
    return await _run(context, invoker, _describe("write", path), cancel)


async def check_net(
    context: PermissionContext,
    target: str,
    api_name: str,
    *,
    cancel: Optional[asyncio.Event] = None,
) -> CheckOutcome:
    """Check network access to "host" or "host:port".

    A port that is not a number in 0-65535 yields a PARAMETER_ERROR outcome
    without consulting the engine.
    """
    engine = _engine(context)
    host, port = target, None
    if ":" in target:
        host, port_text = target.rsplit(":", 1)
        if not (port_text.isascii() and port_text.isdigit()) or int(port_text) > 65535:
            return _parameter_error(context, target)
        port = int(port_text)

    invoker = CheckInvoker(engine.check_net, host, port, api_name, name="check_net")
    return await _run(context, invoker, _describe("net", target), cancel)


async def check_net_url(
    context: PermissionContext,
    url: str,
    api_name: str,
    *,
    cancel: Optional[asyncio.Event] = None,
) -> CheckOutcome:
    """Check network access to the host of a URL."""
    engine = _engine(context)
    parts = _split_url(url)
    if parts is None:
        return _parameter_error(context, url)

    invoker = CheckInvoker(engine.check_net_url, url, api_name, name="check_net_url")
    return await _run(context, invoker, _describe("net", parts.netloc), cancel)


async def check_env(
    context: PermissionContext,
    var_name: str,
    api_name: str,
    *,
    cancel: Optional[asyncio.Event] = None,
) -> CheckOutcome:
    """Check access to an environment variable."""
    invoker = CheckInvoker(_engine(context).check_env, var_name, api_name, name="check_env")
    return await _run(context, invoker, _describe("env", var_name), cancel)
