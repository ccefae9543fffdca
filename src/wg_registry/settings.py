# src/wg_registry/settings.py
from __future__ import annotations
import ipaddress
import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

from .errors import ConfigLoadFailure
from .keys import KEYGENS


DEFAULT_SETTINGS_PATH = Path("data/settings.json")
SETTINGS_ENV = "WG_REGISTRY_SETTINGS"


@dataclass
class Settings:
    domain: str                      # ex: "vpn.example.org"
    server_name: str                 # ex: "gw" -> gw.vpn.example.org
    interface: str = "wg0"
    network: str = "10.8.0.0/24"     # tout le réseau VPN
    listen_port: int = 51820
    endpoint: Optional[str] = None   # hôte public ; sinon l'adresse résolue du serveur
    mtu: int = 1280                  # réduit pour les liens contraints (4G, PPPoE...)
    keepalive: int = 25
    registry_dir: str = "data/peers"
    output_dir: str = "configs"
    clients_dir: str = "configs/clients"
    hooks_dir: str = "/etc/wireguard/hooks"
    keygen: str = "wg"
    hosts: Dict[str, str] = field(default_factory=dict)

    @property
    def server_conf_path(self) -> Path:
        return Path(self.output_dir) / f"{self.interface}.conf"

    def client_conf_path(self, name: str) -> Path:
        return Path(self.clients_dir) / f"{name}.conf"

    def client_qr_path(self, name: str) -> Path:
        return Path(self.clients_dir) / f"{name}.png"

    def hook_dir(self, interface: str) -> Path:
        return Path(self.hooks_dir) / interface


def validate_settings(s: Settings) -> None:
    for key in ("domain", "server_name", "interface"):
        value = getattr(s, key)
        if not isinstance(value, str) or not value.strip():
            raise ConfigLoadFailure(f"Setting '{key}' must be a non-empty string")

    try:
        net = ipaddress.ip_network(s.network, strict=False)
    except (TypeError, ValueError):
        raise ConfigLoadFailure(f"Setting 'network' is not a valid CIDR: {s.network!r}") from None
    if net.version != 4:
        raise ConfigLoadFailure("Setting 'network' must be an IPv4 range")

    for key, low, high in (("listen_port", 1, 65535), ("mtu", 576, 65535), ("keepalive", 0, 65535)):
        value = getattr(s, key)
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            raise ConfigLoadFailure(f"Setting '{key}' must be an integer in [{low}, {high}]")

    if s.keygen not in KEYGENS:
        raise ConfigLoadFailure(f"Setting 'keygen' must be one of {', '.join(sorted(KEYGENS))}")
    if not isinstance(s.hosts, dict):
        raise ConfigLoadFailure("Setting 'hosts' must be a mapping of FQDN to IPv4 address")

    # les fichiers clients obsolètes sont balayés : pas dans le dossier du serveur
    if Path(s.clients_dir).resolve() == Path(s.output_dir).resolve():
        raise ConfigLoadFailure("Settings 'clients_dir' and 'output_dir' must be different directories")


def settings_to_dict(s: Settings) -> dict:
    return asdict(s)


def dict_to_settings(data: dict) -> Settings:
    if not isinstance(data, dict):
        raise ConfigLoadFailure("Settings file must contain a JSON object")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigLoadFailure(f"Unknown setting(s): {', '.join(unknown)}")
    missing = [k for k in ("domain", "server_name") if k not in data]
    if missing:
        raise ConfigLoadFailure(f"Missing setting(s): {', '.join(missing)}")

    s = Settings(**data)
    validate_settings(s)
    return s


def settings_path(path: Optional[Path] = None) -> Path:
    if path is not None:
        return Path(path)
    env = os.environ.get(SETTINGS_ENV)
    return Path(env) if env else DEFAULT_SETTINGS_PATH


def load_settings(path: Optional[Path] = None) -> Settings:
    path = settings_path(path)
    if not path.exists():
        raise ConfigLoadFailure(f"Settings file not found: {path} (run 'vpn init' first)")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigLoadFailure(f"Cannot read settings file {path}: {e}") from None
    return dict_to_settings(data)


def save_settings(s: Settings, path: Optional[Path] = None) -> Path:
    validate_settings(s)
    path = settings_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(settings_to_dict(s), f, indent=2)
        f.write("\n")
    return path
