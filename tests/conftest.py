import pytest

from wg_registry.resolver import AddressResolver
from wg_registry.settings import Settings
from wg_registry.store import PeerStore
from wg_registry.wireguard import ConfigRenderer

DOMAIN = "vpn.example.org"


class CounterKeygen:
    """Deterministic keys: priv-N / pub-N."""

    name = "counter"

    def __init__(self):
        self.calls = 0

    def generate(self):
        self.calls += 1
        return f"priv-{self.calls}", f"pub-{self.calls}"

    def derive(self, private_key):
        return "pub-" + private_key.split("-", 1)[1]


@pytest.fixture
def dns():
    # FQDN -> IPv4, mutable by tests
    return {
        f"gw.{DOMAIN}": "10.8.0.1",
        f"alice.{DOMAIN}": "10.8.0.2",
        f"bob.{DOMAIN}": "10.8.0.3",
        f"carol.{DOMAIN}": "10.8.0.4",
    }


@pytest.fixture
def keygen():
    return CounterKeygen()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        domain=DOMAIN,
        server_name="gw",
        endpoint="vpn.example.com",
        registry_dir=str(tmp_path / "peers"),
        output_dir=str(tmp_path / "out"),
        clients_dir=str(tmp_path / "out" / "clients"),
        hooks_dir=str(tmp_path / "hooks"),
        keygen="x25519",
    )


@pytest.fixture
def store(settings, dns, keygen):
    return PeerStore(
        registry_dir=settings.registry_dir,
        domain=settings.domain,
        server_name=settings.server_name,
        resolver=AddressResolver(lookup=dns.get),
        keygen=keygen,
        clients_dir=settings.clients_dir,
    )


@pytest.fixture
def renderer(store, settings):
    return ConfigRenderer(store, settings)
