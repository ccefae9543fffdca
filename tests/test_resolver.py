import socket

import pytest

from wg_registry.errors import UnresolvableName
from wg_registry.resolver import AddressResolver, dns_lookup


def test_resolves_through_lookup():
    resolver = AddressResolver(lookup={"a.example.org": "10.0.0.1"}.get)
    assert resolver.resolve("a.example.org") == "10.0.0.1"


def test_hosts_override_dns():
    resolver = AddressResolver(
        lookup=lambda fqdn: "10.0.0.1",
        hosts={"A.Example.org.": "10.0.0.9"},
    )
    assert resolver.resolve("a.example.org") == "10.0.0.9"
    assert resolver.resolve("b.example.org") == "10.0.0.1"


def test_no_cache_between_calls():
    answers = iter(["10.0.0.1", "10.0.0.2"])
    resolver = AddressResolver(lookup=lambda fqdn: next(answers))
    assert resolver.resolve("a.example.org") == "10.0.0.1"
    assert resolver.resolve("a.example.org") == "10.0.0.2"


@pytest.mark.parametrize("answer", [None, "", "not-an-ip", "fd00::1"])
def test_unresolvable(answer):
    resolver = AddressResolver(lookup=lambda fqdn: answer)
    with pytest.raises(UnresolvableName):
        resolver.resolve("a.example.org")


def test_dns_lookup_not_found(monkeypatch):
    def fake_getaddrinfo(*args, **kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
    assert dns_lookup("nope.example.org") is None


def test_dns_lookup_first_ipv4(monkeypatch):
    def fake_getaddrinfo(host, port, family, type_):
        assert family == socket.AF_INET
        return [
            (socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("10.0.0.7", 0)),
            (socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("10.0.0.8", 0)),
        ]

    monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
    assert dns_lookup("a.example.org") == "10.0.0.7"
