"""Command-line trigger surface for deploy_mcp.

Exit codes for ``run``: 0 when every target deployed successfully,
1 when any run failed, 2 on invalid arguments.
"""

import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import Any

import click

from deploy_mcp.config import Settings
from deploy_mcp.dependencies import Dependencies
from deploy_mcp.models import DeployTarget, RunReport
from deploy_mcp.pipeline import build_default_stages, describe_stages
from deploy_mcp.services.state import set_dependencies
from deploy_mcp.utils.console import configure_logging

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1


def _load_dependencies() -> Dependencies:
    try:
        return Dependencies.create()
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e


def _build_targets(
    hosts: tuple[str, ...],
    user: str,
    credential_id: str,
    port: int,
    name: str = "",
) -> list[DeployTarget]:
    if name and len(hosts) > 1:
        raise click.BadParameter("--name requires a single --host", param_hint="--name")
    targets = []
    for host in hosts:
        try:
            targets.append(
                DeployTarget(
                    host=host,
                    user=user,
                    credential_id=credential_id,
                    port=port,
                    name=name,
                )
            )
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--host") from e
    return targets


def _emit(reports: list[RunReport], as_json: bool) -> None:
    if as_json:
        payload = [report.to_dict() for report in reports]
        click.echo(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2))
        return
    for report in reports:
        click.echo(report.format_text())


@click.group()
@click.option(
    "--log-level",
    default=None,
    show_default="DEPLOY_LOG_LEVEL or INFO",
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option("--no-color", is_flag=True, help="Disable colored log output")
def cli(log_level: str | None, no_color: bool) -> None:
    """Deploy a web server to remote hosts over SSH."""
    settings = Settings.from_env()
    configure_logging(
        level=log_level or settings.log_level,
        use_colors=settings.log_colors and not no_color,
    )


target_options = [
    click.option(
        "--host",
        "hosts",
        multiple=True,
        required=True,
        envvar="DEPLOY_TARGET_HOST",
        help="Target host or IP (repeat for several targets)",
    ),
    click.option(
        "--user",
        required=True,
        envvar="DEPLOY_TARGET_USER",
        help="SSH user on the target",
    ),
    click.option(
        "--credential-id",
        required=True,
        envvar="DEPLOY_CREDENTIAL_ID",
        help="ID of the private key in the credential store",
    ),
    click.option("--port", default=22, show_default=True, type=int, help="SSH port"),
]


def with_target_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the shared target options to a command."""
    for option in reversed(target_options):
        func = option(func)
    return func


@cli.command()
@with_target_options
@click.option("--name", default="", help="Display name for a single target")
@click.option("--json", "as_json", is_flag=True, help="Print the run report as JSON")
def run(
    hosts: tuple[str, ...],
    user: str,
    credential_id: str,
    port: int,
    name: str,
    as_json: bool,
) -> None:
    """Run the verify/clean/install/check deployment."""
    targets = _build_targets(hosts, user, credential_id, port, name)
    if len({target.name for target in targets}) != len(targets):
        raise click.BadParameter("Hosts must be unique", param_hint="--host")

    deps = _load_dependencies()
    try:
        plans = {
            target.name: build_default_stages(target, deps.config.settings)
            for target in targets
        }
    except ValueError as e:
        raise click.ClickException(f"Invalid deployment settings: {e}") from e

    if len(targets) == 1:
        target = targets[0]
        reports = [asyncio.run(deps.orchestrator.execute(target, plans[target.name]))]
    else:
        by_name = asyncio.run(
            deps.orchestrator.execute_many(targets, lambda t: plans[t.name])
        )
        reports = list(by_name.values())

    _emit(reports, as_json)

    if not all(report.succeeded for report in reports):
        sys.exit(EXIT_FAILURE)


@cli.command()
@with_target_options
def stages(hosts: tuple[str, ...], user: str, credential_id: str, port: int) -> None:
    """Print the stage plan without connecting."""
    targets = _build_targets(hosts, user, credential_id, port)
    deps = _load_dependencies()
    for target in targets:
        try:
            plan = build_default_stages(target, deps.config.settings)
        except ValueError as e:
            raise click.ClickException(f"Invalid deployment settings: {e}") from e
        click.echo(f"═══ {target.name}")
        click.echo(describe_stages(plan))


@cli.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default=None,
    help="MCP transport (default: DEPLOY_TRANSPORT or stdio)",
)
@click.option("--bind", default=None, help="HTTP bind address")
@click.option("--bind-port", default=None, type=int, help="HTTP port")
def serve(transport: str | None, bind: str | None, bind_port: int | None) -> None:
    """Run the MCP server exposing the deploy and plan tools."""
    from deploy_mcp.server import create_server, run_server

    deps = _load_dependencies()
    set_dependencies(deps)
    settings = deps.config.settings

    server = create_server(include_traceback=settings.include_traceback)
    run_server(
        server,
        transport=transport or settings.transport,
        host=bind or settings.mcp_host,
        port=bind_port or settings.mcp_port,
    )


def main() -> None:
    cli()
