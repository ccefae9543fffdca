import socket

import pytest

from wg_registry.errors import DuplicateName, UnresolvableName
from wg_registry.init_server import init_server
from wg_registry.settings import load_settings


@pytest.fixture
def init_kwargs(tmp_path):
    return dict(
        domain="vpn.example.org",
        server_name="gw",
        endpoint="vpn.example.com",
        keygen="x25519",
        settings_path=tmp_path / "data" / "settings.json",
        registry_dir=str(tmp_path / "data" / "peers"),
        output_dir=str(tmp_path / "configs"),
        clients_dir=str(tmp_path / "configs" / "clients"),
        hooks_dir=str(tmp_path / "hooks"),
        hosts={"gw.vpn.example.org": "10.8.0.1"},
    )


def test_init_server(tmp_path, init_kwargs):
    settings, server, result = init_server(**init_kwargs)

    assert server.is_server
    assert server.address == "10.8.0.1"
    assert load_settings(tmp_path / "data" / "settings.json") == settings
    assert (tmp_path / "data" / "peers" / "gw.peer").exists()
    conf = result.server_path.read_text()
    assert f"PrivateKey = {server.private_key}\n" in conf
    assert "Address = 10.8.0.1/24\n" in conf
    assert (tmp_path / "hooks" / "wg0") in result.hooks_created


def test_init_twice_needs_overwrite(init_kwargs):
    _, first, _ = init_server(**init_kwargs)
    with pytest.raises(DuplicateName):
        init_server(**init_kwargs)

    _, second, _ = init_server(overwrite=True, **init_kwargs)
    assert second.private_key != first.private_key


def test_init_unresolvable_server_saves_nothing(tmp_path, init_kwargs, monkeypatch):
    def no_dns(*args, **kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", no_dns)
    init_kwargs["hosts"] = {}
    with pytest.raises(UnresolvableName):
        init_server(**init_kwargs)
    assert not (tmp_path / "data" / "settings.json").exists()
