"""Run report data model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from deploy_mcp.errors import DeployError
from deploy_mcp.models.stage import StageResult
from deploy_mcp.models.target import DeployTarget


class RunOutcome(str, Enum):
    """Overall outcome of a deployment run."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class RunReport:
    """Complete outcome record of one execute invocation.

    Created at run start and filled in by the orchestrator only. Once
    finalize() is called, record() and add_error() raise RuntimeError.
    Callers read results and errors as tuples.
    """

    target: DeployTarget
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None
    _results: list[StageResult] = field(default_factory=list, repr=False)
    _errors: list[DeployError] = field(default_factory=list, repr=False)
    _failed: bool = field(default=False, repr=False)

    @property
    def results(self) -> tuple[StageResult, ...]:
        return tuple(self._results)

    @property
    def errors(self) -> tuple[DeployError, ...]:
        return tuple(self._errors)

    @property
    def is_final(self) -> bool:
        return self.finished_at is not None

    @property
    def outcome(self) -> RunOutcome:
        """Failure if any required stage or verification failed."""
        if self._failed or not self._results:
            return RunOutcome.FAILURE
        return RunOutcome.SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.outcome is RunOutcome.SUCCESS

    @property
    def duration(self) -> float:
        end = self.finished_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def record(self, result: StageResult) -> None:
        """Append a stage result."""
        self._check_open()
        self._results.append(result)

    def add_error(self, error: DeployError, fatal: bool = True) -> None:
        """Attach an error; fatal errors mark the run as failed."""
        self._check_open()
        self._errors.append(error)
        if fatal:
            self._failed = True

    def finalize(self) -> "RunReport":
        """Close the report. Idempotent."""
        if self.finished_at is None:
            self.finished_at = datetime.now()
        return self

    def _check_open(self) -> None:
        if self.is_final:
            raise RuntimeError("RunReport is finalized")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output and MCP tool responses."""
        return {
            "target": {
                "name": self.target.name,
                "host": self.target.host,
                "user": self.target.user,
                "port": self.target.port,
                "credential_id": self.target.credential_id,
            },
            "outcome": self.outcome.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration": round(self.duration, 3),
            "results": [result.to_dict() for result in self._results],
            "errors": [
                {"type": type(error).__name__, "message": str(error)}
                for error in self._errors
            ],
        }

    def format_text(self) -> str:
        """Per-stage log rendering used by the CLI."""
        lines = [f"═══ {self.target.name} ({self.target.address}) "]
        for result in self._results:
            status = "OK" if result.succeeded else "FAILED"
            lines.append(
                f"[{status:<6}] {result.stage_name:<10} "
                f"exit={result.exit_code} ({result.duration:.2f}s)"
            )
            for check in result.http_checks:
                mark = "ok" if check.ok else "FAILED"
                lines.append(f"           http {mark}: {check.describe()}")
        for error in self._errors:
            lines.append(f"  {type(error).__name__}: {error}")
        lines.append(f"─── outcome: {self.outcome.value} ───")
        return "\n".join(lines)
