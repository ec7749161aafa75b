"""Tests for routing table compilation."""

import pytest

from tunnel_bootstrap.common.exceptions import AddressError
from tunnel_bootstrap.models import TunnelDefinition, TunnelProtocol
from tunnel_bootstrap.routing import (
    RoutingTable,
    TunnelRegistration,
    build_registrations,
    build_routing_table,
    parse_upstream_url,
)


def tunnel(name, protocol, **fields):
    return TunnelDefinition(name=name, protocol=protocol, **fields)


@pytest.fixture
def mixed_tunnels():
    """One tunnel per protocol variant."""
    return {
        "web": tunnel("web", TunnelProtocol.HTTP, host="web.example.com",
                      local_addr="http://localhost:8080"),
        "ssh": tunnel("ssh", TunnelProtocol.TCP, local_addr="127.0.0.1:22",
                      remote_addr="0.0.0.0:2222"),
        "ssh4": tunnel("ssh4", TunnelProtocol.TCP4, local_addr="127.0.0.1:23",
                       remote_addr="0.0.0.0:2323"),
        "ssh6": tunnel("ssh6", TunnelProtocol.TCP6, local_addr="[::1]:24",
                       remote_addr="[::]:2424"),
        "tls": tunnel("tls", TunnelProtocol.SNI, host="tls.example.com",
                      local_addr="127.0.0.1:443"),
    }


class TestBuildRoutingTable:
    """Test per-protocol table compilation."""

    def test_tables_partitioned_by_protocol(self, mixed_tunnels):
        """Each sub-table holds exactly its protocol's entries"""
        table = build_routing_table(mixed_tunnels)

        assert list(table.http_routes) == ["web.example.com"]
        assert table.http_routes["web.example.com"].geturl() == "http://localhost:8080"
        assert dict(table.tcp_routes) == {
            "0.0.0.0:2222": "127.0.0.1:22",
            "0.0.0.0:2323": "127.0.0.1:23",
            "[::]:2424": "[::1]:24",
        }
        assert dict(table.sni_routes) == {"tls.example.com": "127.0.0.1:443"}
        assert len(table) == 5

    def test_http_route_is_parsed_url(self, mixed_tunnels):
        url = build_routing_table(mixed_tunnels).http_routes["web.example.com"]

        assert url.scheme == "http"
        assert url.hostname == "localhost"
        assert url.port == 8080

    def test_http_host_collision_last_write_wins(self):
        """Two HTTP tunnels on one host leave a single entry"""
        tunnels = {
            "a": tunnel("a", TunnelProtocol.HTTP, host="same.example.com",
                        local_addr="http://localhost:1"),
            "b": tunnel("b", TunnelProtocol.HTTP, host="same.example.com",
                        local_addr="http://localhost:2"),
        }

        table = build_routing_table(tunnels)

        assert len(table.http_routes) == 1
        assert table.http_routes["same.example.com"].port == 2

    def test_collision_winner_independent_of_insertion_order(self):
        """The winner depends on tunnel names, not mapping order"""
        a = tunnel("a", TunnelProtocol.TCP, local_addr=":1", remote_addr=":9")
        b = tunnel("b", TunnelProtocol.TCP, local_addr=":2", remote_addr=":9")

        forward = build_routing_table({"a": a, "b": b})
        backward = build_routing_table({"b": b, "a": a})

        assert forward.tcp_routes == backward.tcp_routes == {":9": ":2"}

    def test_malformed_http_url(self):
        """A bad upstream URL fails the whole build"""
        tunnels = {
            "good": tunnel("good", TunnelProtocol.HTTP, host="g",
                           local_addr="http://localhost:1"),
            "bad": tunnel("bad", TunnelProtocol.HTTP, host="b",
                          local_addr="http://[::1"),
        }

        with pytest.raises(AddressError, match="invalid tunnel address"):
            build_routing_table(tunnels)

    def test_empty(self):
        table = build_routing_table({})

        assert table == RoutingTable()
        assert len(table) == 0

    def test_tables_are_read_only(self, mixed_tunnels):
        """Compiled tables cannot be modified"""
        table = build_routing_table(mixed_tunnels)

        with pytest.raises(TypeError):
            table.tcp_routes["x"] = "y"  # type: ignore[index]
        with pytest.raises(AttributeError):
            table.sni_routes = {}  # type: ignore[misc]

    def test_tcp_addresses_not_parsed(self):
        """TCP routes keep raw address strings"""
        tunnels = {"q": tunnel("q", TunnelProtocol.TCP, local_addr="tcp://localhost:22")}

        assert dict(build_routing_table(tunnels).tcp_routes) == {"": "tcp://localhost:22"}


class TestParseUpstreamUrl:
    def test_valid(self):
        assert parse_upstream_url("https://localhost/app/").path == "/app/"

    @pytest.mark.parametrize(
        "rawurl", ["localhost", "no scheme here", "http://", "http://localhost:port"]
    )
    def test_invalid(self, rawurl):
        with pytest.raises(AddressError):
            parse_upstream_url(rawurl)


class TestBuildRegistrations:
    def test_registrations(self, mixed_tunnels):
        """Registrations carry the relay-facing tunnel description"""
        registrations = build_registrations(mixed_tunnels)

        assert set(registrations) == set(mixed_tunnels)
        assert registrations["ssh"] == TunnelRegistration(
            protocol=TunnelProtocol.TCP, addr="0.0.0.0:2222"
        )
        assert registrations["web"].host == "web.example.com"
        assert registrations["web"].addr == ""
