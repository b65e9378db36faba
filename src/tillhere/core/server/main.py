"""Command-line entry point for the TillHere lifetime server.

``tillhere-server`` (or ``python -m tillhere.core.server.main``) serves the
MCP tools over Streamable HTTP on the configured host and port.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from tillhere.core.config.settings import Settings, get_settings
from tillhere.core.server.app import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class UnsafeBindError(RuntimeError):
    """The configured host would expose the server beyond this machine."""


def _is_loopback_host(host: str) -> bool:
    """True for ``localhost``, ``*.localhost`` and loopback IPs (``[::1]`` included)."""
    name = host.strip().strip("[]").rstrip(".").lower()
    if name == "localhost" or name.endswith(".localhost"):
        return True
    try:
        return ip_address(name).is_loopback
    except ValueError:
        return False


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def ensure_local_bind(settings: Settings) -> None:
    """Refuse a non-loopback host unless TILLHERE_ALLOW_INSECURE_BIND is set.

    Raises:
        UnsafeBindError: If the host is reachable from other machines.
    """
    host = settings.tillhere_host
    if _is_loopback_host(host):
        return
    if settings.tillhere_allow_insecure_bind:
        logger.warning("Serving on non-loopback host %s with no auth layer", host)
        return
    raise UnsafeBindError(
        f"Refusing non-loopback host {host!r}: the server keeps a date of birth "
        "and has no auth layer. Set TILLHERE_ALLOW_INSECURE_BIND=true to bind anyway."
    )


def run() -> None:
    settings = get_settings()
    logging.basicConfig(level=_log_level(settings.tillhere_log_level), format=LOG_FORMAT)
    ensure_local_bind(settings)

    logger.info(
        "TillHere Lifetime listening on http://%s:%d",
        settings.tillhere_host,
        settings.tillhere_port,
    )
    create_app().run(
        transport="streamable-http",
        host=settings.tillhere_host,
        port=settings.tillhere_port,
    )


if __name__ == "__main__":
    run()
