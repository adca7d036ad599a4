"""Tests for probe_client.py module."""

import asyncio
import socket
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from errors import ProbeError
from probe_client import (
    McStatusProbeClient,
    ProbeClient,
    extract_player_names,
    normalize_motd,
)


def make_status(**overrides):
    status = SimpleNamespace(
        players=SimpleNamespace(
            online=3,
            max=20,
            sample=[SimpleNamespace(name="alice", id="uuid-a"), SimpleNamespace(name="", id="uuid-b")],
        ),
        version=SimpleNamespace(name="1.20.4", protocol=765),
        motd=SimpleNamespace(to_plain=lambda: "A Minecraft Server"),
        icon="data:image/png;base64,AAAA",
        latency=42.5,
    )
    for key, value in overrides.items():
        setattr(status, key, value)
    return status


class TestNormalizeMotd:
    """Tests for MOTD flattening."""

    @pytest.mark.parametrize(
        "motd, expected",
        [
            (None, ""),
            ("", ""),
            ("Welcome!", "Welcome!"),
            (["line one", "line two"], "line one\nline two"),
            ({"clean": ["a", "b"], "raw": "ignored"}, "a\nb"),
            ({"raw": "§aHello"}, "§aHello"),
            ({"html": "<span>Hi</span>"}, "<span>Hi</span>"),
        ],
    )
    def test_plain_values(self, motd, expected):
        assert normalize_motd(motd) == expected

    def test_object_with_to_plain(self):
        motd = SimpleNamespace(to_plain=lambda: "plain text")

        assert normalize_motd(motd) == "plain text"

    def test_unknown_object_falls_back_to_str(self):
        assert normalize_motd(12345) == "12345"


class TestExtractPlayerNames:
    """Tests for player list extraction."""

    def test_name_then_id_fallback(self):
        sample = [SimpleNamespace(name="alice", id="1"), SimpleNamespace(name=None, id="2"), "carol"]

        assert extract_player_names(sample) == ["alice", "2", "carol"]

    def test_missing_sample_is_empty(self):
        assert extract_player_names(None) == []


def make_server(status=None, error=None):
    server = MagicMock()
    server.async_status = AsyncMock(return_value=status, side_effect=error)
    return server


def patch_lookup(server=None, error=None):
    return patch(
        "probe_client.JavaServer.async_lookup",
        new=AsyncMock(return_value=server, side_effect=error),
    )


class TestMcStatusProbeClient:
    """Tests for the mcstatus-backed client with the network patched out."""

    def test_successful_query_builds_probe_result(self):
        server = make_server(make_status())

        with patch_lookup(server) as lookup:
            result = McStatusProbeClient().query("mc.example.net", 25565, 5000)

        lookup.assert_awaited_once_with("mc.example.net", timeout=5.0)
        server.async_status.assert_awaited_once_with(tries=1)
        assert result.online is True
        assert result.host == "mc.example.net"
        assert result.port == 25565
        assert result.players_online == 3
        assert result.players_max == 20
        assert result.player_names == ["alice", "uuid-b"]
        assert result.version == "1.20.4"
        assert result.motd == "A Minecraft Server"
        assert result.favicon == "data:image/png;base64,AAAA"
        assert result.latency_ms == 42.5

    def test_non_default_port_is_passed_explicitly(self):
        with patch_lookup(make_server(make_status())) as lookup:
            McStatusProbeClient().query("mc.example.net", 25570, 2000)

        lookup.assert_awaited_once_with("mc.example.net:25570", timeout=2.0)

    def test_srv_disabled_always_passes_port(self):
        with patch_lookup(make_server(make_status())) as lookup:
            McStatusProbeClient(enable_srv=False).query("mc.example.net", 25565)

        lookup.assert_awaited_once_with("mc.example.net:25565", timeout=5.0)

    def test_version_falls_back_to_protocol(self):
        status = make_status(version=SimpleNamespace(name="", protocol=765))

        with patch_lookup(make_server(status)):
            result = McStatusProbeClient().query("localhost", 25565)

        assert result.version == "765"

    def test_missing_player_counts_default_to_zero(self):
        status = make_status(players=SimpleNamespace(online=None, max=None, sample=None))

        with patch_lookup(make_server(status)):
            result = McStatusProbeClient().query("localhost", 25565)

        assert result.players_online == 0
        assert result.players_max == 0
        assert result.player_names == []

    def test_connection_error_raises_probe_error(self):
        server = make_server(error=ConnectionRefusedError("refused"))

        with patch_lookup(server):
            with pytest.raises(ProbeError) as exc_info:
                McStatusProbeClient().query("localhost", 25565)

        assert "localhost:25565" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    def test_lookup_failure_raises_probe_error(self):
        with patch_lookup(error=ValueError("bad address")):
            with pytest.raises(ProbeError):
                McStatusProbeClient().query("::bad::", 25565)

    def test_slow_status_is_cut_off_at_timeout(self):
        async def never_answers(**kwargs):
            await asyncio.sleep(10)

        server = MagicMock()
        server.async_status = never_answers

        started = time.monotonic()
        with patch_lookup(server):
            with pytest.raises(ProbeError) as exc_info:
                McStatusProbeClient().query("localhost", 25565, timeout_ms=200)

        assert time.monotonic() - started < 1.0
        assert "Timed out" in str(exc_info.value)


def test_silent_server_is_bounded_by_timeout():
    """A server that accepts the connection but never replies fails within the timeout."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(5)
    port = listener.getsockname()[1]
    try:
        started = time.monotonic()
        with pytest.raises(ProbeError):
            McStatusProbeClient().query("127.0.0.1", port, timeout_ms=500)
        elapsed = time.monotonic() - started
    finally:
        listener.close()

    assert elapsed < 0.8


def test_base_client_is_abstract():
    with pytest.raises(NotImplementedError):
        ProbeClient().query("localhost", 25565)
