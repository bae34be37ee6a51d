"""Tests for the scripted answers example."""
from __future__ import annotations

import asyncio
import importlib.util
from pathlib import Path

from capability_approval import CheckCode, CheckerConfig, PermissionContext
from capability_approval.testing import ScriptedEngine


def load_example_module():
    path = Path(__file__).resolve().parents[1] / "example" / "scripted_answers.py"
    spec = importlib.util.spec_from_file_location("scripted_answers", path)
    module = importlib.util.module_from_spec(spec)
    if spec.loader is None:
        raise RuntimeError("Failed to load scripted_answers example")
    spec.loader.exec_module(module)
    return module


def run_example(answers):
    module = load_example_module()
    prompts: list[str] = []

    def prompt(message: str) -> str:
        prompts.append(message)
        return answers.pop(0)

    engine = ScriptedEngine()
    context = PermissionContext(
        engine,
        config=CheckerConfig(poll_interval=0.001),
        presenter_factory=module.answering_presenter(prompt),
    )
    return asyncio.run(module.main(context)), prompts, engine


def test_allow_all_answers_later_reads():
    outcomes, prompts, engine = run_example(["y", "A", "n"])

    assert [outcome.code for outcome in outcomes] == [0, 0, CheckCode.FAILED]
    assert prompts == [
        'read access to "/etc/hosts"',
        'read access to "/etc/passwd"',
        'env access to "HOME"',
    ]
    assert engine.granted == {"read"}


def test_unrecognized_answer_denies():
    outcomes, prompts, _ = run_example(["maybe", "y", "y"])

    assert outcomes[0].code == CheckCode.FAILED
    assert outcomes[0].message.startswith('Requires read access to "/etc/hosts"')
    assert [outcome.code for outcome in outcomes[1:]] == [0, 0]
    assert len(prompts) == 3
