"""Stage execution over an open deploy session."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import asyncssh
import httpx

from deploy_mcp.models import HttpCheckResult, HttpProbe, Stage, StageResult
from deploy_mcp.services.http_check import check_url, parse_status_line
from deploy_mcp.utils.shell import quote_arg

if TYPE_CHECKING:
    from deploy_mcp.protocols import RemoteSession

logger = logging.getLogger(__name__)

# Exit codes used when the command never produced one
EXIT_TIMEOUT = 124  # timeout(1)
EXIT_CONNECTION_LOST = 255  # ssh(1)


async def probe_from_target(
    session: "RemoteSession",
    probe: HttpProbe,
    timeout: float,
) -> HttpCheckResult:
    """Issue a HEAD request on the target host itself using curl.

    Returns:
        HttpCheckResult with vantage "target"
    """
    command = f"curl -sS -I --max-time {int(timeout)} {quote_arg(probe.url)}"
    try:
        result = await session.run(command, timeout=timeout + 5)
    except asyncio.TimeoutError:
        return HttpCheckResult(
            url=probe.url,
            vantage="target",
            status_code=None,
            expected_status=probe.expected_status,
            error=f"timed out after {timeout}s",
        )
    except (asyncssh.Error, OSError) as e:
        return HttpCheckResult(
            url=probe.url,
            vantage="target",
            status_code=None,
            expected_status=probe.expected_status,
            error=f"session error: {e}",
        )

    status = parse_status_line(result.output)
    error = None
    if result.returncode != 0:
        error = result.error.strip() or f"curl exited with {result.returncode}"
    elif status is None:
        error = "no HTTP status line in response"

    return HttpCheckResult(
        url=probe.url,
        vantage="target",
        status_code=status,
        expected_status=probe.expected_status,
        error=error,
    )


async def run_probes(
    session: "RemoteSession",
    probes: tuple[HttpProbe, ...],
    http_timeout: float,
    http_client: httpx.AsyncClient | None = None,
) -> tuple[HttpCheckResult, ...]:
    """Run HTTP probes in declared order."""
    checks: list[HttpCheckResult] = []
    for probe in probes:
        if probe.vantage == "target":
            check = await probe_from_target(session, probe, http_timeout)
        else:
            check = await check_url(
                probe.url,
                timeout=http_timeout,
                expected_status=probe.expected_status,
                client=http_client,
            )
        log = logger.info if check.ok else logger.warning
        log("HTTP check %s", check.describe())
        checks.append(check)
    return tuple(checks)


async def run_stage(
    session: "RemoteSession",
    stage: Stage,
    command_timeout: float = 300,
    http_timeout: float = 10,
    http_client: httpx.AsyncClient | None = None,
) -> StageResult:
    """Execute one stage remotely and capture its result.

    Never raises for remote failures: a lost connection is reported as
    exit code 255 and a command timeout as exit code 124. HTTP probes
    only run when the command itself succeeded.

    Args:
        session: Open remote session
        stage: Stage to run
        command_timeout: Seconds allowed for the stage command
        http_timeout: Seconds allowed per HTTP probe
        http_client: Optional shared httpx client for orchestrator probes

    Returns:
        StageResult for the stage
    """
    logger.info("Running stage [%s]", stage.name)
    logger.debug("Stage [%s] command: %s", stage.name, stage.command)
    start = time.perf_counter()

    try:
        result = await session.run(stage.command, timeout=command_timeout)
        exit_code, stdout, stderr = result.returncode, result.output, result.error
    except asyncio.TimeoutError:
        exit_code, stdout = EXIT_TIMEOUT, ""
        stderr = f"Command timed out after {command_timeout}s"
    except (asyncssh.Error, OSError) as e:
        exit_code, stdout = EXIT_CONNECTION_LOST, ""
        stderr = f"Connection lost: {e}"

    checks: tuple[HttpCheckResult, ...] = ()
    if exit_code == 0 and stage.http_probes:
        checks = await run_probes(session, stage.http_probes, http_timeout, http_client)

    duration = time.perf_counter() - start
    stage_result = StageResult(
        stage_name=stage.name,
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        duration=duration,
        http_checks=checks,
    )

    logger.info(
        "Stage [%s] %s (exit=%d, %.2fs)",
        stage.name,
        "succeeded" if stage_result.succeeded else "failed",
        exit_code,
        duration,
    )
    return stage_result
