"""Data model for probe samples, history and per-player statistics.

All persisted structures round-trip through plain dicts (``to_dict`` /
``from_dict``) using the camelCase keys of the on-disk JSON layout.
Timestamps are held as timezone-aware UTC datetimes in memory and stored as
ISO-8601 strings with millisecond precision and a ``Z`` suffix.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Naive datetimes are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp written by ``format_timestamp``.

    Raises:
        ValueError: If the value is not a string or not a valid timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ProbeSample:
    """One recorded probe outcome."""
    taken_at: datetime
    online: bool
    players_online: int = 0
    players_max: int = 0

    @classmethod
    def offline(cls, taken_at: datetime) -> "ProbeSample":
        return cls(taken_at=taken_at, online=False, players_online=0, players_max=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "takenAt": format_timestamp(self.taken_at),
            "online": self.online,
            "playersOnline": self.players_online,
            "playersMax": self.players_max,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProbeSample":
        if not isinstance(data, dict):
            raise ValueError(f"Sample must be an object, got {type(data).__name__}")
        return cls(
            taken_at=parse_timestamp(data["takenAt"]),
            online=bool(data["online"]),
            players_online=int(data.get("playersOnline", 0)),
            players_max=int(data.get("playersMax", 0)),
        )


@dataclass
class HistoryLog:
    """Ordered sequence of probe samples, oldest first."""
    samples: List[ProbeSample] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"samples": [s.to_dict() for s in self.samples]}

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryLog":
        if not isinstance(data, dict) or not isinstance(data.get("samples"), list):
            raise ValueError("History must be an object with a 'samples' list")
        return cls(samples=[ProbeSample.from_dict(s) for s in data["samples"]])


class PlayerRecord:
    """Open set of named statistics for one player.

    Any field name is legal; the well-known statistics get typed accessors
    that return None when the field is absent.
    """

    def __init__(self, fields: Optional[Dict[str, Any]] = None) -> None:
        self.fields: Dict[str, Any] = dict(fields or {})

    def _get(self, name: str) -> Any:
        return self.fields.get(name)

    @property
    def playtime_seconds(self) -> Optional[float]:
        return self._get("playtimeSeconds")

    @property
    def kills(self) -> Optional[int]:
        return self._get("kills")

    @property
    def deaths(self) -> Optional[int]:
        return self._get("deaths")

    @property
    def blocks_mined(self) -> Optional[int]:
        return self._get("blocksMined")

    @property
    def blocks_placed(self) -> Optional[int]:
        return self._get("blocksPlaced")

    @property
    def distance(self) -> Optional[float]:
        return self._get("distance")

    @property
    def sessions(self) -> Optional[List[Any]]:
        return self._get("sessions")

    def overwritten_by(self, incoming: "PlayerRecord") -> "PlayerRecord":
        """Return a new record with every field of ``incoming`` replacing ours.

        Shallow: nested values such as ``sessions`` are replaced, not combined.
        """
        merged = dict(self.fields)
        merged.update(incoming.fields)
        return PlayerRecord(merged)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlayerRecord):
            return NotImplemented
        return self.fields == other.fields

    def __repr__(self) -> str:
        return f"PlayerRecord({self.fields!r})"


@dataclass
class StatsAggregate:
    """Persisted per-player statistics keyed by username."""
    players: Dict[str, PlayerRecord] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": {name: rec.to_dict() for name, rec in self.players.items()},
            "updatedAt": format_timestamp(self.updated_at) if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "StatsAggregate":
        if not isinstance(data, dict):
            raise ValueError("Stats must be an object")
        players = data.get("players") or {}
        if not isinstance(players, dict):
            raise ValueError("Stats 'players' must be an object")
        for name, rec in players.items():
            if not isinstance(rec, dict):
                raise ValueError(f"Stats record for {name!r} must be an object")
        updated_at = data.get("updatedAt")
        return cls(
            players={name: PlayerRecord(rec) for name, rec in players.items()},
            updated_at=parse_timestamp(updated_at) if updated_at else None,
        )


@dataclass
class BatchInput:
    """Validated import batch: username to incoming record."""
    players: Dict[str, PlayerRecord]


@dataclass
class MergeResult:
    """Summary returned to the caller of an import."""
    updated_player_count: int
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "updatedPlayerCount": self.updated_player_count,
            "updatedAt": format_timestamp(self.updated_at),
        }


@dataclass
class ProbeResult:
    """Successful status query of a game server."""
    host: str
    port: int
    players_online: int
    players_max: int
    player_names: List[str] = field(default_factory=list)
    version: Optional[str] = None
    motd: str = ""
    favicon: Optional[str] = None
    latency_ms: Optional[float] = None
    obtained_at: datetime = field(default_factory=utc_now)
    online: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "online": True,
            "host": self.host,
            "port": self.port,
            "players": {
                "online": self.players_online,
                "max": self.players_max,
                "list": list(self.player_names),
            },
            "version": self.version,
            "motd": self.motd,
            "favicon": self.favicon,
            "latencyMs": self.latency_ms,
            "obtainedAt": format_timestamp(self.obtained_at),
        }


@dataclass
class ProbeFailure:
    """Structured failure of an on-demand probe."""
    host: str
    port: int
    error: str
    online: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"online": False, "host": self.host, "port": self.port, "error": self.error}
