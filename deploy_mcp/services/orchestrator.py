"""Deployment orchestrator.

Connects to a target, runs stages strictly in order, and aggregates
their results into a RunReport.

Failure policy:
- connection or credential failure: one synthetic result for the first
  stage with exit code 255, run fails
- failing stage with continue_on_error: ToleratedCommandError, run continues
- failing stage without continue_on_error: CommandError (or
  VerificationError for stages with HTTP probes), run stops and later
  stages are omitted
- nothing is rolled back

The session is closed exactly once on every exit path.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

import httpx

from deploy_mcp.config import Settings
from deploy_mcp.errors import (
    CommandError,
    ConnectionError,
    CredentialNotFound,
    DeployError,
    ToleratedCommandError,
    VerificationError,
)
from deploy_mcp.models import DeployTarget, RunReport, Stage, StageResult
from deploy_mcp.protocols import CredentialStore
from deploy_mcp.services.executors import EXIT_CONNECTION_LOST, run_stage
from deploy_mcp.services.session import DeploySession, load_client_key, open_session

logger = logging.getLogger(__name__)

StagePlanner = Callable[[DeployTarget], Sequence[Stage]]


def classify_failure(stage: Stage, result: StageResult) -> DeployError:
    """Map a failed stage result to its error kind."""
    if stage.http_probes:
        failures = [check.describe() for check in result.failed_checks]
        if result.exit_code != 0:
            failures.insert(0, f"command exited with {result.exit_code}")
        return VerificationError(stage.name, failures)
    if stage.continue_on_error:
        return ToleratedCommandError(stage.name, result.exit_code, result.stderr)
    return CommandError(stage.name, result.exit_code, result.stderr)


class DeploymentOrchestrator:
    """Runs stage sequences against deployment targets."""

    def __init__(
        self,
        credentials: CredentialStore,
        settings: Settings | None = None,
        known_hosts: str | None = None,
        strict_host_key_checking: bool = True,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize orchestrator.

        Args:
            credentials: Store resolving credential IDs to key material
            settings: Timeouts and retry policy (defaults if omitted)
            known_hosts: Path to known_hosts file, or None to disable verification
            strict_host_key_checking: Whether to reject unknown host keys
            retry_delay: Seconds between connection attempts when retries are on
        """
        self.credentials = credentials
        self.settings = settings or Settings()
        self.known_hosts = known_hosts
        self.strict_host_key_checking = strict_host_key_checking
        self.retry_delay = retry_delay

    async def connect(self, target: DeployTarget) -> DeploySession:
        """Resolve the target's credential and open an SSH session.

        Retries up to ``settings.connect_retries`` extra times on timeout
        or unreachable errors. Authentication failures are never retried.

        Raises:
            CredentialNotFound: If the credential ID is unknown
            ConnectionError: If the session cannot be established
        """
        key_data = self.credentials.get(target.credential_id)
        client_key = load_client_key(target, key_data, self.settings.key_passphrase)

        retries = self.settings.connect_retries
        attempt = 0
        while True:
            try:
                return await open_session(
                    target,
                    client_key,
                    connect_timeout=self.settings.connect_timeout,
                    known_hosts=self.known_hosts,
                    strict_host_key_checking=self.strict_host_key_checking,
                )
            except ConnectionError as e:
                if e.reason == "auth" or attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    "Connection to %s failed (%s), retrying (%d/%d)",
                    target.name,
                    e.reason,
                    attempt,
                    retries,
                )
                await asyncio.sleep(self.retry_delay)

    async def run_stage(
        self,
        session: DeploySession,
        stage: Stage,
        http_client: httpx.AsyncClient | None = None,
    ) -> StageResult:
        """Run one stage on an open session. Never raises for remote failures."""
        return await run_stage(
            session,
            stage,
            command_timeout=self.settings.command_timeout,
            http_timeout=self.settings.http_timeout,
            http_client=http_client,
        )

    async def execute(
        self,
        target: DeployTarget,
        stages: Sequence[Stage],
    ) -> RunReport:
        """Connect to ``target`` and run ``stages`` in order.

        Args:
            target: Deployment target
            stages: Ordered stage sequence

        Returns:
            Finalized RunReport

        Raises:
            ValueError: If ``stages`` is empty
        """
        if not stages:
            raise ValueError("No stages to run")

        report = RunReport(target=target)
        logger.info(
            "Starting deployment to %s (%s, %d stages)",
            target.name,
            target.address,
            len(stages),
        )

        start = time.perf_counter()
        try:
            session = await self.connect(target)
        except (ConnectionError, CredentialNotFound) as e:
            report.record(
                StageResult(
                    stage_name=stages[0].name,
                    exit_code=EXIT_CONNECTION_LOST,
                    stderr=str(e),
                    duration=time.perf_counter() - start,
                )
            )
            report.add_error(e)
            logger.error("Aborting deployment to %s: %s", target.name, e)
            return report.finalize()

        async with session, httpx.AsyncClient() as http_client:
            for index, stage in enumerate(stages):
                result = await self.run_stage(session, stage, http_client)
                report.record(result)
                if result.succeeded:
                    continue

                error = classify_failure(stage, result)
                if stage.continue_on_error:
                    report.add_error(error, fatal=False)
                    logger.warning("Tolerated failure in stage [%s]: %s", stage.name, error)
                    continue

                report.add_error(error)
                skipped = [s.name for s in stages[index + 1 :]]
                logger.error(
                    "Aborting deployment to %s at stage [%s]: %s%s",
                    target.name,
                    stage.name,
                    error,
                    f" (skipping {', '.join(skipped)})" if skipped else "",
                )
                break

        report.finalize()
        log = logger.info if report.succeeded else logger.error
        log(
            "Deployment to %s completed: %s (%.2fs)",
            target.name,
            report.outcome.value,
            report.duration,
        )
        return report

    async def execute_many(
        self,
        targets: Sequence[DeployTarget],
        planner: StagePlanner,
    ) -> dict[str, RunReport]:
        """Deploy to several targets concurrently.

        Each target gets its own session and stage sequence from
        ``planner``; runs share no mutable state.

        Args:
            targets: Targets with unique names
            planner: Builds the stage sequence for a target

        Returns:
            Reports keyed by target name, in input order

        Raises:
            ValueError: If target names are not unique
        """
        names = [target.name for target in targets]
        if len(set(names)) != len(names):
            raise ValueError(f"Target names must be unique: {names}")

        reports = await asyncio.gather(
            *(self.execute(target, list(planner(target))) for target in targets)
        )
        return dict(zip(names, reports))
