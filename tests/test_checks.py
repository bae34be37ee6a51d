"""Tests for the public check coroutines."""
import asyncio

import pytest

from capability_approval import (
    CheckCancelled,
    CheckCode,
    CheckerConfig,
    CheckResult,
    ConfigurationError,
    DecisionSymbol,
    EngineError,
    PermissionContext,
    check_env,
    check_net,
    check_net_url,
    check_read,
    check_write,
)
from capability_approval.testing import RecordingPresenter, RecordingSink, ScriptedEngine


class AnsweringPresenter(RecordingPresenter):
    """Records the prompt, then answers it as soon as it opens."""

    answer_with = DecisionSymbol.ALLOW

    def open(self, visible):
        super().open(visible)
        if visible:
            self.answer(self.answer_with)


def make_context(engine, answer=DecisionSymbol.ALLOW, **config):
    presenters: list[AnsweringPresenter] = []
    sink = RecordingSink()

    def presenter_factory(handle):
        presenter = AnsweringPresenter(handle)
        presenter.answer_with = answer
        presenters.append(presenter)
        return presenter

    config.setdefault("poll_interval", 0.001)
    ctx = PermissionContext(
        engine,
        config=CheckerConfig(**config),
        presenter_factory=presenter_factory,
        sink_factory=lambda handle: sink,
    )
    return ctx, presenters, sink


class TestFileChecks:
    """Tests for check_read and check_write."""

    def test_read_allowed_after_prompt(self):
        engine = ScriptedEngine()
        ctx, presenters, sink = make_context(engine)

        outcome = asyncio.run(check_read(ctx, "/etc/hosts", "Deno.readTextFile"))

        assert outcome.code == CheckCode.SUCCESS
        assert outcome.message == "success"
        assert presenters[0].messages == ['read access to "/etc/hosts"']
        assert engine.calls == [
            ("read", "/etc/hosts", None),
            ("read", "/etc/hosts", DecisionSymbol.ALLOW),
        ]
        assert sink.shown == []
        assert engine.live == 0

    def test_write_denied_is_reported(self):
        """A denial is an outcome, not an exception, and is shown once."""
        engine = ScriptedEngine()
        ctx, _, sink = make_context(engine, answer=DecisionSymbol.DENY)

        outcome = asyncio.run(check_write(ctx, "/tmp/out.txt", "Deno.writeTextFile"))

        assert outcome.code == CheckCode.FAILED
        assert outcome.message == (
            'Requires write access to "/tmp/out.txt", run again with the --allow-write flag'
        )
        assert sink.shown == [(outcome.message, False)]

    def test_granted_capability_skips_prompt(self):
        engine = ScriptedEngine(granted={"read"})
        ctx, presenters, _ = make_context(engine)

        outcome = asyncio.run(check_read(ctx, "/etc/hosts", "Deno.readTextFile"))

        assert outcome.is_success
        assert presenters == []
        assert len(engine.calls) == 1

    def test_allow_all_covers_later_checks(self):
        engine = ScriptedEngine()
        ctx, presenters, _ = make_context(engine, answer=DecisionSymbol.ALWAYS_ALLOW)

        async def scenario():
            first = await check_read(ctx, "/etc/hosts", "Deno.readTextFile")
            second = await check_read(ctx, "/etc/passwd", "Deno.readTextFile")
            return first, second

        first, second = asyncio.run(scenario())

        assert first.is_success and second.is_success
        assert len(presenters) == 1
        assert engine.calls[-1] == ("read", "/etc/passwd", None)

    def test_oversize_prompt_denied_without_asking(self):
        engine = ScriptedEngine()
        ctx, presenters, _ = make_context(engine, max_prompt_length=32)

        outcome = asyncio.run(check_read(ctx, "/" + "a" * 64, "Deno.readTextFile"))

        assert outcome.code == CheckCode.FAILED
        assert presenters == []
        assert engine.calls[-1][2] is DecisionSymbol.DENY


class TestNetChecks:
    """Tests for check_net and check_net_url."""

    def test_host_and_port(self):
        engine = ScriptedEngine()
        ctx, presenters, _ = make_context(engine)

        outcome = asyncio.run(check_net(ctx, "example.com:8080", "fetch"))

        assert outcome.is_success
        assert presenters[0].message == 'net access to "example.com:8080"'
        assert engine.calls[0] == ("net", "example.com:8080", None)

    def test_host_only(self):
        engine = ScriptedEngine()
        ctx, _, _ = make_context(engine)

        asyncio.run(check_net(ctx, "example.com", "fetch"))

        assert engine.calls[0] == ("net", "example.com", None)

    @pytest.mark.parametrize("target", ["example.com:http", "example.com:70000", "example.com:", "example.com:-1"])
    def test_invalid_port(self, target):
        """Malformed ports are rejected without asking the engine."""
        engine = ScriptedEngine()
        ctx, presenters, sink = make_context(engine)

        outcome = asyncio.run(check_net(ctx, target, "fetch"))

        assert outcome.code == CheckCode.PARAMETER_ERROR
        assert outcome.message == f"{target} parameter is invalid."
        assert engine.calls == []
        assert presenters == []
        assert sink.shown == [(outcome.message, False)]

    def test_url(self):
        engine = ScriptedEngine()
        ctx, presenters, _ = make_context(engine)

        outcome = asyncio.run(check_net_url(ctx, "https://deno.land:443/x/mod.ts", "fetch"))

        assert outcome.is_success
        assert presenters[0].message == 'net access to "deno.land:443"'
        assert engine.calls[0] == ("net", "https://deno.land:443/x/mod.ts", None)

    @pytest.mark.parametrize(
        "url", ["not a url", "https://", "http://example.com:99999/", "http://example.com:port/"]
    )
    def test_invalid_url(self, url):
        engine = ScriptedEngine()
        ctx, _, sink = make_context(engine)

        outcome = asyncio.run(check_net_url(ctx, url, "fetch"))

        assert outcome.code == CheckCode.PARAMETER_ERROR
        assert engine.calls == []
        assert sink.shown == [(f"{url} parameter is invalid.", False)]


class TestEnvCheck:
    """Tests for check_env."""

    def test_env_allowed(self):
        engine = ScriptedEngine()
        ctx, presenters, _ = make_context(engine)

        outcome = asyncio.run(check_env(ctx, "HOME", "Deno.env.get"))

        assert outcome.is_success
        assert presenters[0].message == 'env access to "HOME"'

    def test_engine_failure_raises(self):
        """Engine errors propagate instead of becoming outcomes."""

        class BrokenEngine(ScriptedEngine):
            def check_env(self, var_name, api_name, *, decision=None):
                raise RuntimeError("permission state corrupted")

        ctx, _, sink = make_context(BrokenEngine())

        with pytest.raises(EngineError, match="check_env failed: permission state corrupted"):
            asyncio.run(check_env(ctx, "HOME", "Deno.env.get"))
        assert sink.shown == []

    def test_custom_failure_code(self):
        class QuotaEngine(ScriptedEngine):
            def check_env(self, var_name, api_name, *, decision=None):
                return CheckResult(7, "env quota exceeded")

        ctx, _, sink = make_context(QuotaEngine())

        outcome = asyncio.run(check_env(ctx, "HOME", "Deno.env.get"))

        assert outcome.code == 7
        assert sink.shown == [("env quota exceeded", False)]


class TestCheckSetup:
    """Tests for misconfiguration and cancellation."""

    def test_missing_engine(self):
        ctx = PermissionContext(sink_factory=RecordingSink)
        with pytest.raises(ConfigurationError, match="no engine"):
            asyncio.run(check_read(ctx, "/etc/hosts", "Deno.readTextFile"))

    def test_cancelled_check(self):
        engine = ScriptedEngine()
        ctx, _, _ = make_context(engine)

        async def scenario():
            cancel = asyncio.Event()
            cancel.set()
            await check_write(ctx, "/tmp/out.txt", "Deno.writeTextFile", cancel=cancel)

        with pytest.raises(CheckCancelled):
            asyncio.run(scenario())
        assert engine.calls == []

    @pytest.mark.parametrize(
        "mode, expected",
        [("approve_all", CheckCode.SUCCESS), ("strict", CheckCode.FAILED)],
    )
    def test_unattended_modes(self, mode, expected):
        engine = ScriptedEngine()
        sink = RecordingSink()
        ctx = PermissionContext(
            engine,
            config=CheckerConfig(mode=mode, poll_interval=0.001),
            sink_factory=lambda handle: sink,
        )

        outcome = asyncio.run(check_env(ctx, "HOME", "Deno.env.get"))

        assert outcome.code == expected
        assert ctx.is_awaiting_decision is False
