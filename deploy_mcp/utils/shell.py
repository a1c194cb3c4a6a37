"""Shell command safety utilities."""

import shlex


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands."""
    return shlex.quote(path)


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument."""
    return shlex.quote(arg)


def join_steps(*steps: str, stop_on_error: bool = True) -> str:
    """Join shell steps into one command line.

    With ``stop_on_error`` the steps are chained with ``&&``. Otherwise
    every step runs, and the command exits with the status of the last
    step that failed (0 if none did).

    Args:
        steps: Individual shell commands
        stop_on_error: Stop at the first failing step

    Returns:
        Single command string
    """
    steps = tuple(step for step in steps if step)
    if stop_on_error:
        return " && ".join(steps)
    tracked = " ".join(f"{step} || rc=$?;" for step in steps)
    return f"rc=0; {tracked} exit $rc"
