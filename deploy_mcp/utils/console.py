"""Colorful console logging for deployment runs."""

import logging
import re
import sys
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "white": "\033[37m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

# Log level colors
LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names
COMPONENT_COLORS = {
    "deploy_mcp.services.orchestrator": COLORS["bright_cyan"],
    "deploy_mcp.services.session": COLORS["bright_magenta"],
    "deploy_mcp.services": COLORS["cyan"],
    "deploy_mcp.server": COLORS["bright_blue"],
    "deploy_mcp.middleware": COLORS["yellow"],
    "deploy_mcp.config": COLORS["green"],
    "default": COLORS["white"],
}

NOISY_LOGGERS = [
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "anyio",
]

SSH_PATTERN = re.compile(r"(\w[\w.\-]*@[\w.\-]+:\d+)")
DURATION_PATTERN = re.compile(r"(\d+\.?\d*(?:ms|s)\b)")
EXIT_PATTERN = re.compile(r"(exit(?:_code)?=\d+)")
STAGE_PATTERN = re.compile(r"([Ss]tage \[[\w\-]+\])")


class ColorfulFormatter(logging.Formatter):
    """Log formatter with colored levels, components and highlights."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _get_component_color(self, name: str) -> str:
        for prefix, color in COMPONENT_COLORS.items():
            if prefix != "default" and name.startswith(prefix):
                return color
        return COMPONENT_COLORS["default"]

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt.strftime('%H:%M:%S')}.{int(record.msecs):03d}"

    def _format_level(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = LEVEL_COLORS.get(level, COLORS["white"])
        return self._colorize(f"{level:<8}", color)

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name
        if name.startswith("deploy_mcp."):
            name = name[len("deploy_mcp.") :]
        color = self._get_component_color(record.name)
        return self._colorize(f"{name:<24}", color)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a single aligned line."""
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._format_level(record)
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _highlight_message(self, message: str) -> str:
        if not self.use_colors:
            return message

        message = SSH_PATTERN.sub(
            f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
        )
        message = STAGE_PATTERN.sub(
            f"{COLORS['bright_cyan']}\\1{COLORS['reset']}", message
        )
        message = EXIT_PATTERN.sub(
            f"{COLORS['bright_blue']}\\1{COLORS['reset']}", message
        )
        message = DURATION_PATTERN.sub(
            f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message
        )
        return message


class StageEventFormatter(ColorfulFormatter):
    """Formatter that prefixes deployment events with a short marker."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()

        if "starting" in message or "ready" in message:
            return f"{COLORS['bright_green']}>>>{COLORS['reset']} {base}"
        elif "aborting" in message or "shutting down" in message:
            return f"{COLORS['bright_red']}<<<{COLORS['reset']} {base}"
        elif "error" in message or "failed" in message:
            return f"{COLORS['bright_red']}!!{COLORS['reset']}  {base}"
        elif "tolerated" in message or "warning" in message:
            return f"{COLORS['bright_yellow']}!{COLORS['reset']}   {base}"
        elif "succeeded" in message or "completed" in message:
            return f"{COLORS['bright_green']}OK{COLORS['reset']}  {base}"
        elif "opening" in message or "running" in message:
            return f"{COLORS['bright_cyan']}+{COLORS['reset']}   {base}"
        elif "closing" in message:
            return f"{COLORS['bright_yellow']}-{COLORS['reset']}   {base}"

        return f"    {base}"


def configure_logging(level: str = "INFO", use_colors: bool = True) -> None:
    """Attach the colorful handler to the deploy_mcp logger.

    Colors are disabled when stderr is not a TTY. Safe to call more than
    once; the handler is only added the first time.

    Args:
        level: Log level name for the deploy_mcp logger
        use_colors: Whether ANSI colors may be used
    """
    if not sys.stderr.isatty():
        use_colors = False

    package_logger = logging.getLogger("deploy_mcp")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(StageEventFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)
