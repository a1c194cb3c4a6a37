"""Stage and stage result data models."""

from dataclasses import dataclass, field
from typing import Any, Literal

Vantage = Literal["target", "orchestrator"]


@dataclass(frozen=True)
class HttpProbe:
    """HTTP reachability check attached to a stage.

    A "target" probe is issued on the target host itself (loopback),
    an "orchestrator" probe is issued from the machine running the deploy.
    """

    url: str
    vantage: Vantage = "orchestrator"
    expected_status: int = 200


@dataclass(frozen=True)
class Stage:
    """One discrete remote action in the deployment sequence."""

    name: str
    command: str
    continue_on_error: bool = False
    http_probes: tuple[HttpProbe, ...] = ()


@dataclass(frozen=True)
class HttpCheckResult:
    """Outcome of a single HTTP probe."""

    url: str
    vantage: Vantage
    status_code: int | None
    expected_status: int = 200
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True when the probe returned the expected status."""
        return self.status_code == self.expected_status

    def describe(self) -> str:
        """Short human-readable summary for logs and error messages."""
        if self.error:
            return f"{self.vantage} {self.url}: {self.error}"
        return f"{self.vantage} {self.url}: HTTP {self.status_code}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "vantage": self.vantage,
            "status_code": self.status_code,
            "expected_status": self.expected_status,
            "ok": self.ok,
            "error": self.error,
        }


@dataclass(frozen=True)
class StageResult:
    """Result of running one stage. Produced once per executed stage."""

    stage_name: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    http_checks: tuple[HttpCheckResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """Command exited 0 and every HTTP check returned its expected status."""
        return self.exit_code == 0 and all(check.ok for check in self.http_checks)

    @property
    def failed_checks(self) -> list[HttpCheckResult]:
        return [check for check in self.http_checks if not check.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage_name,
            "exit_code": self.exit_code,
            "succeeded": self.succeeded,
            "duration": round(self.duration, 3),
            "stdout": self.stdout,
            "stderr": self.stderr,
            "http_checks": [check.to_dict() for check in self.http_checks],
        }
