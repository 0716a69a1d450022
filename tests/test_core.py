import json

import pytest

from rosadr.core import Pipeline, PipelineResult, StepPolicy
from rosadr.errors import DRError, EmptyResultError
from rosadr.models import OIDCTrust


class ScriptedPipeline(Pipeline):
    NAME = "scripted"

    def __init__(self, steps, **kwargs):
        super().__init__(runner=None, **kwargs)
        self.steps = steps

    def _execute(self):
        for name, policy, callback in self.steps:
            self._run_step(name, policy, callback)


def _fail(message="boom"):
    def callback():
        raise DRError(message)

    return callback


def test_best_effort_failure_continues_and_marks_partial():
    pipeline = ScriptedPipeline(
        [
            ("first", StepPolicy.BEST_EFFORT, _fail()),
            ("second", StepPolicy.FATAL, lambda: "ok"),
        ]
    )

    result = pipeline.run()

    assert result.status == "partial"
    assert result.exit_code == 2
    assert result.failed_steps == ["first"]
    assert result.outcome("second").status == "success"


def test_fatal_failure_stops_the_run():
    reached = []
    pipeline = ScriptedPipeline(
        [
            ("first", StepPolicy.FATAL, _fail("cannot continue")),
            ("second", StepPolicy.FATAL, lambda: reached.append(True)),
        ]
    )

    result = pipeline.run()

    assert result.status == "failed"
    assert result.error == "cannot continue"
    assert reached == []


def test_warning_marks_step_without_failing_it():
    pipeline = ScriptedPipeline([])
    pipeline.steps = [("warned", StepPolicy.FATAL, lambda: pipeline._warn("already exists"))]

    result = pipeline.run()

    assert result.status == "success"
    assert result.outcome("warned").status == "warning"
    assert result.outcome("warned").details == {"warning": "already exists"}


def test_keyboard_interrupt_aborts_run(tmp_path):
    report_file = tmp_path / "report.json"

    def interrupt():
        raise KeyboardInterrupt

    result = ScriptedPipeline(
        [("slow", StepPolicy.FATAL, interrupt)], report_file=str(report_file)
    ).run()

    assert result.status == "aborted"
    assert result.exit_code == 1
    assert json.loads(report_file.read_text(encoding="utf-8"))["status"] == "aborted"


def test_unexpected_exception_fails_run():
    def explode():
        raise ValueError("unexpected")

    result = ScriptedPipeline([("explode", StepPolicy.BEST_EFFORT, explode)]).run()

    assert result.status == "failed"
    assert result.error == "unexpected"


def test_exit_codes_by_status():
    assert PipelineResult(pipeline="x", status="success").exit_code == 0
    assert PipelineResult(pipeline="x", status="partial").exit_code == 2
    assert PipelineResult(pipeline="x", status="failed").exit_code == 1
    assert PipelineResult(pipeline="x", status="aborted").exit_code == 1


def test_oidc_trust_requires_every_field():
    with pytest.raises(EmptyResultError, match="provider_arn"):
        OIDCTrust.build("https://oidc.example/abc", "oidc.example/abc", "  ")

    trust = OIDCTrust.build(" https://oidc.example/abc ", "oidc.example/abc", "arn:aws:iam::1:oidc-provider/x")
    assert trust.issuer_url == "https://oidc.example/abc"
