"""Default four-stage web server deployment.

1. verify  - lightweight no-op proving the session works
2. clean   - stop service, purge package, empty content dir (tolerant)
3. install - install package, write index page, enable + start service
4. check   - service active on target, loopback and external HTTP probes

Each stage's ``continue_on_error`` flag declares its failure policy.
"""

import re

from deploy_mcp.config import Settings
from deploy_mcp.models import DeployTarget, HttpProbe, Stage
from deploy_mcp.utils.shell import join_steps, quote_arg, quote_path
from deploy_mcp.utils.validation import validate_content_dir

PACKAGE_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9+.\-@]*$")
APT = "sudo DEBIAN_FRONTEND=noninteractive apt-get"

STAGE_VERIFY = "verify"
STAGE_CLEAN = "clean"
STAGE_INSTALL = "install"
STAGE_CHECK = "check"


def _validate_unit_name(kind: str, value: str) -> str:
    if not PACKAGE_NAME_PATTERN.match(value):
        raise ValueError(f"Invalid {kind} name: {value!r}")
    return value


def _url_for(host: str, port: int) -> str:
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if port == 80:
        return f"http://{host}/"
    return f"http://{host}:{port}/"


def verify_stage() -> Stage:
    return Stage(
        name=STAGE_VERIFY,
        command='echo "connected to $(hostname)" && uname -a',
        continue_on_error=False,
    )


def clean_stage(settings: Settings) -> Stage:
    """Remove any previous installation. Safe to run when nothing is installed."""
    package = _validate_unit_name("package", settings.package)
    service = _validate_unit_name("service", settings.service)
    content_dir = quote_path(validate_content_dir(settings.content_dir))

    command = join_steps(
        f"sudo systemctl stop {service}",
        f"{APT} purge -y {package}",
        f"{APT} autoremove -y",
        f"if [ -d {content_dir} ]; then sudo find {content_dir} -mindepth 1 -delete; fi",
        stop_on_error=False,
    )
    return Stage(name=STAGE_CLEAN, command=command, continue_on_error=True)


def install_stage(settings: Settings) -> Stage:
    package = _validate_unit_name("package", settings.package)
    service = _validate_unit_name("service", settings.service)
    content_dir = validate_content_dir(settings.content_dir)
    index_file = quote_path(f"{content_dir}/index.html")

    command = join_steps(
        f"{APT} update -y",
        f"{APT} install -y {package}",
        f"sudo mkdir -p {quote_path(content_dir)}",
        f"printf '%s\\n' {quote_arg(settings.page_content)} | sudo tee {index_file} > /dev/null",
        f"sudo systemctl enable {service}",
        f"sudo systemctl start {service}",
    )
    return Stage(name=STAGE_INSTALL, command=command, continue_on_error=False)


def check_stage(target: DeployTarget, settings: Settings) -> Stage:
    service = _validate_unit_name("service", settings.service)
    return Stage(
        name=STAGE_CHECK,
        command=f"systemctl is-active --quiet {service} && echo '{service} is active'",
        continue_on_error=False,
        http_probes=(
            HttpProbe(url=_url_for("localhost", settings.http_port), vantage="target"),
            HttpProbe(
                url=_url_for(target.host, settings.http_port),
                vantage="orchestrator",
            ),
        ),
    )


def build_default_stages(target: DeployTarget, settings: Settings) -> list[Stage]:
    """Build the verify/clean/install/check sequence for ``target``.

    Raises:
        ValueError: If package, service or content directory settings are invalid
    """
    return [
        verify_stage(),
        clean_stage(settings),
        install_stage(settings),
        check_stage(target, settings),
    ]


def describe_stages(stages: list[Stage]) -> str:
    """Render a stage plan for display."""
    lines = []
    for index, stage in enumerate(stages, start=1):
        policy = "continue on error" if stage.continue_on_error else "abort on error"
        lines.append(f"{index}. {stage.name} ({policy})")
        lines.append(f"   $ {stage.command}")
        for probe in stage.http_probes:
            lines.append(
                f"   HEAD {probe.url} from {probe.vantage} "
                f"(expect {probe.expected_status})"
            )
    return "\n".join(lines)
