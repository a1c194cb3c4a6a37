"""HTTP reachability checks."""

import logging
import re

import httpx

from deploy_mcp.models import HttpCheckResult

logger = logging.getLogger(__name__)

STATUS_LINE_PATTERN = re.compile(r"^HTTP/\d(?:\.\d)?\s+(\d{3})", re.MULTILINE)


def parse_status_line(headers: str) -> int | None:
    """Extract the status code from raw response headers.

    When redirects or ``100 Continue`` produce several header blocks,
    the last status line wins.

    Args:
        headers: Raw header text, e.g. ``curl -sI`` output

    Returns:
        Status code, or None if no status line is present
    """
    matches = STATUS_LINE_PATTERN.findall(headers)
    if not matches:
        return None
    return int(matches[-1])


async def check_url(
    url: str,
    timeout: float = 10.0,
    expected_status: int = 200,
    client: httpx.AsyncClient | None = None,
) -> HttpCheckResult:
    """Issue a HEAD request from this machine and record the status.

    Never raises for network failures; they are reported in the result.

    Args:
        url: URL to probe
        timeout: Request timeout in seconds
        expected_status: Status code that counts as reachable
        client: Optional shared client

    Returns:
        HttpCheckResult with vantage "orchestrator"
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.head(url)
        else:
            response = await client.head(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.warning("HEAD %s failed: %s", url, e)
        return HttpCheckResult(
            url=url,
            vantage="orchestrator",
            status_code=None,
            expected_status=expected_status,
            error=f"{type(e).__name__}: {e}",
        )

    logger.debug("HEAD %s -> %d", url, response.status_code)
    return HttpCheckResult(
        url=url,
        vantage="orchestrator",
        status_code=response.status_code,
        expected_status=expected_status,
    )
