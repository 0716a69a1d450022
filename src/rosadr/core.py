import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console

from .errors import DRError
from .models import StepOutcome
from .services.report import RunReportService
from .services.state_reader import ExternalStateReader

console = Console()
logger = logging.getLogger("rosadr")


class StepPolicy(str, Enum):
    """How a step failure affects the rest of the run."""

    FATAL = "fatal"
    BEST_EFFORT = "best_effort"


@dataclass
class PipelineResult:
    pipeline: str
    status: str = "running"
    outcomes: List[StepOutcome] = field(default_factory=list)
    values: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    EXIT_CODES = {"success": 0, "partial": 2}

    @property
    def exit_code(self) -> int:
        return self.EXIT_CODES.get(self.status, 1)

    @property
    def failed_steps(self) -> List[str]:
        return [outcome.name for outcome in self.outcomes if outcome.status == "failed"]

    def outcome(self, name: str) -> Optional[StepOutcome]:
        for outcome in reversed(self.outcomes):
            if outcome.name == name:
                return outcome
        return None


class Pipeline:
    """Runs named steps in order, recording one outcome per step."""

    NAME = "pipeline"

    def __init__(
        self,
        runner,
        reader: Optional[ExternalStateReader] = None,
        report_file: Optional[str] = None,
        dry_run: bool = False,
    ):
        self.runner = runner
        self.reader = reader or ExternalStateReader(runner, logger)
        self.dry_run = dry_run
        self.run_id = uuid.uuid4().hex[:10]
        self.report_service = RunReportService(report_file=report_file, logger=logger)
        self.result = PipelineResult(pipeline=self.NAME)
        self._step_warning: Optional[str] = None

    def _metadata(self) -> Dict[str, Any]:
        return {}

    def _execute(self):
        raise NotImplementedError

    def _warn(self, message: str):
        """Completes the current step with a warning instead of plain success."""
        console.print(f"[yellow]Warning:[/yellow] {message}")
        logger.warning(message)
        self._step_warning = message

    def _set_value(self, key: str, value: Any):
        self.result.values[key] = value
        self.report_service.set_value(key, value)

    def _skip_step(self, name: str, policy: StepPolicy, reason: str):
        logger.info("Skipping step %s: %s", name, reason)
        self.result.outcomes.append(
            StepOutcome(name=name, policy=policy.value, status="skipped", details={"reason": reason})
        )
        self.report_service.step_skipped(name, policy.value, reason)

    def _record_failure(self, name: str, policy: StepPolicy, message: str):
        """Records a step that could not be attempted as failed."""
        console.print(f"[red]Step {name} failed:[/red] {message}")
        logger.error("Step %s failed: %s", name, message)
        self.result.outcomes.append(
            StepOutcome(name=name, policy=policy.value, status="failed", error=message)
        )
        self.report_service.step_started(name, policy.value)
        self.report_service.step_finished(name, "failed", error=message)

    def _run_step(self, name: str, policy: StepPolicy, callback, *args, **kwargs) -> Tuple[Any, bool]:
        self.report_service.step_started(name, policy.value)
        self._step_warning = None
        logger.debug("Starting step %s (%s)", name, policy.value)

        try:
            value = callback(*args, **kwargs)
        except DRError as exc:
            self.result.outcomes.append(
                StepOutcome(name=name, policy=policy.value, status="failed", error=str(exc))
            )
            self.report_service.step_finished(name, "failed", error=str(exc))
            if policy is StepPolicy.FATAL:
                raise
            console.print(f"[red]Step {name} failed, continuing:[/red] {exc}")
            logger.error("Step %s failed: %s", name, exc)
            return None, False

        status = "warning" if self._step_warning else "success"
        details = {"warning": self._step_warning} if self._step_warning else {}
        self.result.outcomes.append(
            StepOutcome(name=name, policy=policy.value, status=status, details=details)
        )
        self.report_service.step_finished(name, status, details=details)
        return value, True

    def run(self) -> PipelineResult:
        try:
            logger.info("Starting %s run %s", self.NAME, self.run_id)
            self.report_service.start_run(self.run_id, self.NAME, self._metadata())
            self._execute()

            if self.result.failed_steps:
                self.result.status = "partial"
                console.print(
                    f"[bold yellow]{self.NAME} finished with failed steps:[/bold yellow] "
                    f"{', '.join(self.result.failed_steps)}"
                )
            else:
                self.result.status = "success"
                console.print(f"[bold green]{self.NAME} completed successfully.[/bold green]")
            return self.result

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            self.result.status = "aborted"
            self.result.error = "Operation cancelled by user."
            return self.result
        except DRError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            self.result.status = "failed"
            self.result.error = str(exc)
            return self.result
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            self.result.status = "failed"
            self.result.error = str(exc)
            return self.result
        finally:
            self.report_service.finalize(self.result.status, error=self.result.error)
