# src/wg_registry/wireguard.py
from __future__ import annotations
import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import NotFound
from .files import atomic_write
from .hooks import HOOK_STEPS, ensure_default
from .models import PeerRecord
from .settings import Settings
from .store import CLIENT_FILE_SUFFIXES, PeerStore
from .subnets import merge, network_prefix

log = logging.getLogger(__name__)


def hook_command(hook_dir: Path, step: str) -> str:
    """
    Ligne wg-quick qui lance, dans l'ordre des noms, chaque exécutable de
    `hook_dir` avec (<step>, <interface>). Un hook en échec est signalé sur
    stderr puis ignoré : les suivants tournent quand même.
    """
    pattern = f"{shlex.quote(str(hook_dir))}/*"
    return (
        f'for hook in {pattern}; do [ -x "$hook" ] || continue; '
        f'"$hook" {step} %i || echo "hook $hook failed ({step})" >&2; done'
    )


def hook_lines(hook_dir: Path) -> List[str]:
    return [f"{step} = {hook_command(hook_dir, step)}" for step in HOOK_STEPS]


@dataclass
class RenderResult:
    server_path: Path
    client_paths: Dict[str, Path] = field(default_factory=dict)
    removed: List[Path] = field(default_factory=list)
    hooks_created: List[Path] = field(default_factory=list)


class ConfigRenderer:
    """
    Régénère entièrement la config serveur et une config par client
    à partir de tout le registre (jamais de mise à jour partielle).
    """

    def __init__(self, store: PeerStore, settings: Settings):
        self.store = store
        self.settings = settings

    # ---------- Snapshot ----------

    def _peers(self, peers: Optional[Sequence[PeerRecord]]) -> List[PeerRecord]:
        if peers is None:
            peers = list(self.store.list_all())
        return sorted(peers, key=lambda p: p.name)

    def _server(self, peers: Sequence[PeerRecord]) -> PeerRecord:
        for p in peers:
            if p.is_server:
                return p
        raise NotFound(
            f"Server '{self.settings.server_name}' is not initialised (run 'vpn init' first)"
        )

    def _address(self, peer: PeerRecord) -> str:
        return f"{peer.address}/{network_prefix(self.settings.network)}"

    def endpoint(self, server: PeerRecord) -> str:
        host = self.settings.endpoint
        if not host:
            log.warning("no endpoint configured, clients will use %s", server.address)
            host = server.address
        return f"{host}:{self.settings.listen_port}"

    # ---------- Rendu des configs ----------

    def render_server(self, peers: Optional[Sequence[PeerRecord]] = None) -> str:
        peers = self._peers(peers)
        s = self._server(peers)

        lines = [
            "[Interface]",
            f"PrivateKey = {s.private_key}",
            f"Address = {self._address(s)}",
            f"ListenPort = {self.settings.listen_port}",
            *hook_lines(self.settings.hook_dir(self.settings.interface)),
            "SaveConfig = false",
            "",
        ]

        for p in peers:
            if p.is_server:
                continue
            allowed = merge(",", "", f"{p.address}/32", ",".join(p.subnets))
            lines += [
                "[Peer]",
                f"PublicKey = {p.public_key}",
                f"AllowedIPs = {allowed}",
                "",
            ]

        return "\n".join(lines).strip() + "\n"

    def render_clients(self, peers: Optional[Sequence[PeerRecord]] = None) -> Dict[str, str]:
        peers = self._peers(peers)
        s = self._server(peers)
        endpoint = self.endpoint(s)

        # tous les sous-réseaux du registre, serveur compris
        all_subnets = merge(",", "", *(",".join(p.subnets) for p in peers))

        configs: Dict[str, str] = {}
        for p in peers:
            if p.is_server:
                continue
            own = ",".join(p.subnets)
            allowed = merge(",", own, own, self.settings.network, all_subnets)

            lines = [
                "[Interface]",
                f"PrivateKey = {p.private_key}",
                f"Address = {self._address(p)}",
                f"MTU = {self.settings.mtu}",
                *hook_lines(self.settings.hook_dir(p.name)),
                "",
                "[Peer]",
                f"PublicKey = {s.public_key}",
                f"Endpoint = {endpoint}",
                f"AllowedIPs = {allowed}",
                f"PersistentKeepalive = {self.settings.keepalive}",
            ]
            configs[p.name] = "\n".join(lines).strip() + "\n"

        return configs

    def render_all(self) -> tuple[str, Dict[str, str]]:
        """Serveur + clients depuis une seule lecture du registre."""
        peers = self._peers(None)
        return self.render_server(peers), self.render_clients(peers)

    # ---------- Écriture ----------

    def write_all(self) -> RenderResult:
        """
        Tout est rendu en mémoire avant la moindre écriture : une erreur
        (peer non résolu...) laisse les fichiers précédents intacts.
        """
        server_conf, client_confs = self.render_all()

        settings = self.settings
        result = RenderResult(server_path=settings.server_conf_path)

        for interface in [settings.interface, *client_confs]:
            hook_dir = settings.hook_dir(interface)
            if ensure_default(hook_dir, interface):
                result.hooks_created.append(hook_dir)

        atomic_write(result.server_path, server_conf)
        log.info("wrote %s", result.server_path)

        for name, conf in client_confs.items():
            path = settings.client_conf_path(name)
            atomic_write(path, conf)
            result.client_paths[name] = path
            log.info("wrote %s", path)

        # clients supprimés : ni config ni QR code ne doivent leur survivre
        clients_dir = Path(settings.clients_dir)
        server_path = result.server_path.resolve()
        if clients_dir.is_dir():
            stale = [
                path
                for suffix in CLIENT_FILE_SUFFIXES
                for path in clients_dir.glob(f"*{suffix}")
                if path.stem not in client_confs and path.resolve() != server_path
            ]
            for path in sorted(stale):
                path.unlink()
                result.removed.append(path)
                log.info("removed stale %s", path)

        return result
