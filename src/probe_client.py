"""Game server probe abstraction module.

All mcstatus library usage is isolated here. No other module talks to the
network; the scheduler and service only depend on the ProbeClient contract.
"""

import asyncio
import logging
from typing import Any, List, Optional

from mcstatus import JavaServer

from errors import ProbeError
from models import ProbeResult, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_GAME_PORT = 25565


class ProbeClient:
    """Contract for querying a game server's status."""

    def query(self, host: str, port: int, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> ProbeResult:
        """Query the server at host:port.

        Args:
            host: Server hostname or IP address
            port: Server port
            timeout_ms: Upper bound for the whole query in milliseconds

        Returns:
            ProbeResult describing the online server

        Raises:
            ProbeError: On timeout, connection or protocol failure
        """
        raise NotImplementedError


def normalize_motd(motd: Any) -> str:
    """Flatten a message of the day into plain text.

    Accepts plain strings, mcstatus Motd objects, lists of lines and
    dicts carrying ``clean``/``raw``/``html`` variants.
    """
    if not motd:
        return ""
    if isinstance(motd, str):
        return motd
    if isinstance(motd, (list, tuple)):
        return "\n".join(str(line) for line in motd)
    if isinstance(motd, dict):
        for key in ("clean", "raw", "html"):
            if motd.get(key):
                return normalize_motd(motd[key])
        return str(motd)
    to_plain = getattr(motd, "to_plain", None)
    if callable(to_plain):
        return to_plain()
    return str(motd)


def extract_player_names(sample: Optional[List[Any]]) -> List[str]:
    """Return player names from a status sample, falling back to ids."""
    names = []
    for player in sample or []:
        if isinstance(player, str):
            names.append(player)
            continue
        name = getattr(player, "name", None) or getattr(player, "id", None)
        if name:
            names.append(str(name))
    return names


def _version_label(version: Any) -> Optional[str]:
    if version is None:
        return None
    name = getattr(version, "name", None)
    if name:
        return str(name)
    protocol = getattr(version, "protocol", None)
    return str(protocol) if protocol is not None else None


class McStatusProbeClient(ProbeClient):
    """ProbeClient backed by the Java-edition Server List Ping of mcstatus."""

    def __init__(self, enable_srv: bool = True) -> None:
        """Initialize the client.

        Args:
            enable_srv: Resolve SRV records when the default game port is used
        """
        self._enable_srv = enable_srv

    def _address(self, host: str, port: int) -> str:
        # mcstatus only consults SRV records when the address carries no port
        if self._enable_srv and port == DEFAULT_GAME_PORT:
            return host
        return f"{host}:{port}"

    async def _status(self, address: str, timeout: float) -> Any:
        server = await JavaServer.async_lookup(address, timeout=timeout)
        return await server.async_status(tries=1)

    def query(self, host: str, port: int, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> ProbeResult:
        """Query the server, bounding lookup, connect and read by one deadline."""
        timeout = timeout_ms / 1000.0
        try:
            status = asyncio.run(
                asyncio.wait_for(self._status(self._address(host, port), timeout), timeout)
            )
        except asyncio.TimeoutError as e:
            logger.debug(f"Probe of {host}:{port} timed out after {timeout_ms}ms")
            raise ProbeError(f"Timed out querying {host}:{port} after {timeout_ms}ms") from e
        except Exception as e:
            logger.debug(f"Probe of {host}:{port} failed: {e!r}")
            raise ProbeError(f"Failed to query {host}:{port}: {e}") from e

        players = status.players
        return ProbeResult(
            host=host,
            port=port,
            players_online=getattr(players, "online", None) or 0,
            players_max=getattr(players, "max", None) or 0,
            player_names=extract_player_names(getattr(players, "sample", None)),
            version=_version_label(status.version),
            motd=normalize_motd(getattr(status, "motd", None)),
            favicon=getattr(status, "icon", None),
            latency_ms=getattr(status, "latency", None),
            obtained_at=utc_now(),
        )
