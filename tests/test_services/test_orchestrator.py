"""Tests for the deployment orchestrator."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from deploy_mcp.config import Settings
from deploy_mcp.errors import (
    CommandError,
    ConnectionError,
    CredentialNotFound,
    ToleratedCommandError,
    VerificationError,
)
from deploy_mcp.models import (
    CommandResult,
    DeployTarget,
    HttpCheckResult,
    RunOutcome,
)
from deploy_mcp.pipeline import build_default_stages
from deploy_mcp.services.credentials import FileCredentialStore
from deploy_mcp.services.orchestrator import DeploymentOrchestrator


def external_ok(url: str, **kwargs: Any) -> HttpCheckResult:
    return HttpCheckResult(url=url, vantage="orchestrator", status_code=200)


@pytest.fixture
def mock_open_session() -> Iterator[AsyncMock]:
    with patch(
        "deploy_mcp.services.orchestrator.open_session", new_callable=AsyncMock
    ) as mock:
        yield mock


@pytest.fixture(autouse=True)
def mock_load_key() -> Iterator[MagicMock]:
    with patch("deploy_mcp.services.orchestrator.load_client_key") as mock:
        mock.return_value = MagicMock(name="ssh-key")
        yield mock


@pytest.fixture
def mock_check_url() -> Iterator[AsyncMock]:
    with patch(
        "deploy_mcp.services.executors.check_url",
        new=AsyncMock(side_effect=external_ok),
    ) as mock:
        yield mock


@pytest.fixture
def orchestrator(credentials: Any, settings: Settings) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        credentials=credentials,
        settings=settings,
        known_hosts=None,
        retry_delay=0,
    )


@pytest.fixture
def stages(target: DeployTarget, settings: Settings) -> list:
    return build_default_stages(target, settings)


class TestExecute:
    """Stage sequencing and failure policy."""

    @pytest.mark.asyncio
    async def test_all_stages_succeed(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        curl_200: Any,
        mock_open_session: AsyncMock,
        mock_check_url: AsyncMock,
    ) -> None:
        """Four results, success, both final HTTP checks report 200."""
        session = make_session(rules=[("curl", curl_200)])
        mock_open_session.return_value = session

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.SUCCESS
        assert [r.stage_name for r in report.results] == [
            "verify",
            "clean",
            "install",
            "check",
        ]
        final = report.results[-1]
        assert len(final.http_checks) == 2
        assert [c.status_code for c in final.http_checks] == [200, 200]
        assert {c.vantage for c in final.http_checks} == {"target", "orchestrator"}
        assert report.errors == ()
        assert report.is_final
        assert session.close_count == 1
        mock_check_url.assert_awaited_once()
        assert mock_check_url.call_args[0][0] == "http://203.0.113.10/"

    @pytest.mark.asyncio
    async def test_unreachable_target(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        mock_open_session: AsyncMock,
    ) -> None:
        """Connection failure yields a single verify result with exit code 255."""
        mock_open_session.side_effect = ConnectionError(
            target.name, "unreachable", OSError("No route to host")
        )

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert len(report.results) == 1
        assert report.results[0].stage_name == "verify"
        assert report.results[0].exit_code == 255
        assert "No route to host" in report.results[0].stderr
        assert isinstance(report.errors[0], ConnectionError)

    @pytest.mark.asyncio
    async def test_connect_timeout_reported(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        mock_open_session: AsyncMock,
    ) -> None:
        """Timeout reason is preserved on the recorded error."""
        mock_open_session.side_effect = ConnectionError(target.name, "timeout")

        report = await orchestrator.execute(target, stages)

        assert report.errors[0].reason == "timeout"
        assert report.results[0].exit_code == 255

    @pytest.mark.asyncio
    async def test_verify_stage_failure_aborts(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        mock_open_session: AsyncMock,
    ) -> None:
        """A failing first stage leaves exactly one result."""
        session = make_session(
            rules=[("uname", CommandResult(output="", error="sh: denied", returncode=1))]
        )
        mock_open_session.return_value = session

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert len(report.results) == 1
        assert isinstance(report.errors[0], CommandError)
        assert session.close_count == 1
        assert len(session.commands) == 1

    @pytest.mark.asyncio
    async def test_install_failure_skips_check(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        mock_open_session: AsyncMock,
        mock_check_url: AsyncMock,
    ) -> None:
        """Install failure stops the run before the check stage."""
        session = make_session(
            rules=[
                (
                    "apt-get update",
                    CommandResult(
                        output="",
                        error="E: Failed to fetch http://archive.ubuntu.com/",
                        returncode=100,
                    ),
                )
            ]
        )
        mock_open_session.return_value = session

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert [r.stage_name for r in report.results] == ["verify", "clean", "install"]
        assert report.results[-1].exit_code == 100
        error = report.errors[-1]
        assert isinstance(error, CommandError)
        assert not isinstance(error, ToleratedCommandError)
        assert "Failed to fetch" in str(error)
        assert not any("systemctl is-active" in c for c in session.commands)
        mock_check_url.assert_not_awaited()
        assert session.close_count == 1

    @pytest.mark.asyncio
    async def test_clean_failure_is_tolerated(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        curl_200: Any,
        mock_open_session: AsyncMock,
        mock_check_url: AsyncMock,
    ) -> None:
        """Cleanup failure is recorded but the run still succeeds."""
        session = make_session(
            rules=[
                ("purge", CommandResult(output="", error="not installed", returncode=5)),
                ("curl", curl_200),
            ]
        )
        mock_open_session.return_value = session

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.SUCCESS
        assert len(report.results) == 4
        assert report.results[1].exit_code == 5
        assert len(report.errors) == 1
        assert isinstance(report.errors[0], ToleratedCommandError)

    @pytest.mark.asyncio
    async def test_external_check_failure_is_verification_error(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        curl_200: Any,
        mock_open_session: AsyncMock,
    ) -> None:
        """Unreachable from outside: run fails with VerificationError."""
        session = make_session(rules=[("curl", curl_200)])
        mock_open_session.return_value = session
        blocked = HttpCheckResult(
            url="http://203.0.113.10/",
            vantage="orchestrator",
            status_code=None,
            error="ConnectTimeout: timed out",
        )

        with patch(
            "deploy_mcp.services.executors.check_url",
            new=AsyncMock(return_value=blocked),
        ):
            report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert len(report.results) == 4
        error = report.errors[-1]
        assert isinstance(error, VerificationError)
        assert "timed out" in str(error)
        assert report.results[-1].http_checks[0].ok

    @pytest.mark.asyncio
    async def test_connection_lost_mid_run(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        mock_open_session: AsyncMock,
    ) -> None:
        """Dropped connection is recorded as exit 255 and the session closed once."""
        session = make_session(
            rules=[("apt-get update", asyncssh.ConnectionLost("Connection reset"))]
        )
        mock_open_session.return_value = session

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert report.results[-1].stage_name == "install"
        assert report.results[-1].exit_code == 255
        assert session.close_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_still_closes_session(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        make_session: Any,
        mock_open_session: AsyncMock,
    ) -> None:
        """Session is released even when an unexpected exception escapes."""
        session = make_session(rules=[("purge", RuntimeError("boom"))])
        mock_open_session.return_value = session

        with pytest.raises(RuntimeError):
            await orchestrator.execute(target, stages)

        assert session.close_count == 1

    @pytest.mark.asyncio
    async def test_unknown_credential(
        self,
        orchestrator: DeploymentOrchestrator,
        stages: list,
        mock_open_session: AsyncMock,
    ) -> None:
        """Missing credential fails the run without connecting."""
        target = DeployTarget(host="203.0.113.10", user="ubuntu", credential_id="missing")

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert len(report.results) == 1
        assert report.results[0].exit_code == 255
        assert isinstance(report.errors[0], CredentialNotFound)
        mock_open_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_key_file(
        self,
        settings: Settings,
        target: DeployTarget,
        stages: list,
        mock_open_session: AsyncMock,
        tmp_path: Path,
    ) -> None:
        """Undecodable key material is reported, not raised."""
        (tmp_path / "ec2-key").write_bytes(b"\xff\xfe\x00bad")
        orchestrator = DeploymentOrchestrator(
            credentials=FileCredentialStore(tmp_path), settings=settings
        )

        report = await orchestrator.execute(target, stages)

        assert report.outcome is RunOutcome.FAILURE
        assert [(r.stage_name, r.exit_code) for r in report.results] == [("verify", 255)]
        assert isinstance(report.errors[0], CredentialNotFound)
        mock_open_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_stage_list_rejected(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
    ) -> None:
        with pytest.raises(ValueError, match="No stages"):
            await orchestrator.execute(target, [])


class TestConnect:
    """Connection retry policy."""

    @pytest.mark.asyncio
    async def test_no_retry_by_default(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        mock_open_session: AsyncMock,
    ) -> None:
        mock_open_session.side_effect = ConnectionError(target.name, "unreachable")

        with pytest.raises(ConnectionError):
            await orchestrator.connect(target)

        assert mock_open_session.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures(
        self,
        credentials: Any,
        target: DeployTarget,
        make_session: Any,
        mock_open_session: AsyncMock,
    ) -> None:
        orchestrator = DeploymentOrchestrator(
            credentials=credentials,
            settings=Settings(connect_retries=2),
            retry_delay=0,
        )
        session = make_session()
        mock_open_session.side_effect = [
            ConnectionError(target.name, "timeout"),
            session,
        ]

        result = await orchestrator.connect(target)

        assert result is session
        assert mock_open_session.await_count == 2

    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(
        self,
        credentials: Any,
        target: DeployTarget,
        mock_open_session: AsyncMock,
    ) -> None:
        orchestrator = DeploymentOrchestrator(
            credentials=credentials,
            settings=Settings(connect_retries=3),
            retry_delay=0,
        )
        mock_open_session.side_effect = ConnectionError(target.name, "auth")

        with pytest.raises(ConnectionError) as exc_info:
            await orchestrator.connect(target)

        assert exc_info.value.reason == "auth"
        assert mock_open_session.await_count == 1

    @pytest.mark.asyncio
    async def test_passes_timeout_and_host_key_policy(
        self,
        credentials: Any,
        target: DeployTarget,
        make_session: Any,
        mock_open_session: AsyncMock,
        mock_load_key: MagicMock,
    ) -> None:
        orchestrator = DeploymentOrchestrator(
            credentials=credentials,
            settings=Settings(connect_timeout=7, key_passphrase="secret"),
            known_hosts="/tmp/known_hosts",
            strict_host_key_checking=False,
        )
        mock_open_session.return_value = make_session()

        await orchestrator.connect(target)

        mock_load_key.assert_called_once_with(
            target, credentials.keys["ec2-key"], "secret"
        )
        kwargs = mock_open_session.call_args.kwargs
        assert kwargs["connect_timeout"] == 7
        assert kwargs["known_hosts"] == "/tmp/known_hosts"
        assert kwargs["strict_host_key_checking"] is False


class TestCleanIdempotence:
    """Running the clean stage repeatedly converges on the same state."""

    @pytest.mark.asyncio
    async def test_clean_twice_leaves_package_absent(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        stages: list,
        fake_host: Any,
    ) -> None:
        clean = stages[1]
        session = fake_host.session()

        first = await orchestrator.run_stage(session, clean)
        assert fake_host.installed is False

        second = await orchestrator.run_stage(session, clean)
        assert fake_host.installed is False

        assert first.stage_name == second.stage_name == "clean"
        assert clean.continue_on_error is True


class TestExecuteMany:
    """Independent runs across several targets."""

    @pytest.mark.asyncio
    async def test_each_target_gets_own_session(
        self,
        orchestrator: DeploymentOrchestrator,
        settings: Settings,
        make_session: Any,
        curl_200: Any,
        mock_open_session: AsyncMock,
        mock_check_url: AsyncMock,
    ) -> None:
        web1 = DeployTarget(host="10.0.0.1", user="ubuntu", credential_id="ec2-key")
        web2 = DeployTarget(host="10.0.0.2", user="ubuntu", credential_id="ec2-key")
        sessions = {"10.0.0.1": make_session(rules=[("curl", curl_200)])}

        async def fake_open(target: DeployTarget, *args: Any, **kwargs: Any) -> Any:
            if target.host in sessions:
                return sessions[target.host]
            raise ConnectionError(target.name, "unreachable")

        mock_open_session.side_effect = fake_open

        reports = await orchestrator.execute_many(
            [web1, web2], lambda t: build_default_stages(t, settings)
        )

        assert list(reports) == ["10.0.0.1", "10.0.0.2"]
        assert reports["10.0.0.1"].outcome is RunOutcome.SUCCESS
        assert reports["10.0.0.2"].outcome is RunOutcome.FAILURE
        assert len(reports["10.0.0.2"].results) == 1
        assert sessions["10.0.0.1"].close_count == 1

    @pytest.mark.asyncio
    async def test_duplicate_names_rejected(
        self,
        orchestrator: DeploymentOrchestrator,
        target: DeployTarget,
        settings: Settings,
    ) -> None:
        with pytest.raises(ValueError, match="unique"):
            await orchestrator.execute_many(
                [target, target], lambda t: build_default_stages(t, settings)
            )
