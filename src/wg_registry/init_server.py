# src/wg_registry/init_server.py

from __future__ import annotations
from pathlib import Path
from typing import Optional

from .files import registry_lock
from .models import PeerKind, PeerRecord
from .settings import Settings, save_settings, validate_settings
from .store import PeerStore
from .wireguard import ConfigRenderer, RenderResult


def init_server(
    domain: str,
    server_name: str,
    interface: str = "wg0",
    network: str = "10.8.0.0/24",
    listen_port: int = 51820,
    endpoint: str | None = None,
    keygen: str = "wg",
    overwrite: bool = False,
    settings_path: Optional[Path] = None,
    **extra,
) -> tuple[Settings, PeerRecord, RenderResult]:
    """
    Écrit les paramètres globaux, crée le peer serveur puis régénère tout.
    """
    settings = Settings(
        domain=domain,
        server_name=server_name,
        interface=interface,
        network=network,
        listen_port=listen_port,
        endpoint=endpoint,
        keygen=keygen,
        **extra,
    )
    validate_settings(settings)

    store = PeerStore.from_settings(settings)
    with registry_lock(store.registry_dir):
        # serveur d'abord : un init refusé ne touche pas aux paramètres existants
        server = store.create(server_name, PeerKind.SERVER, overwrite=overwrite)
        save_settings(settings, settings_path)
        result = ConfigRenderer(store, settings).write_all()

    return settings, server, result
