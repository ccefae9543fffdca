# src/wg_registry/store.py
from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import DuplicateName, InvalidPeerType, InvalidRecord, KeygenFailure, NotFound
from .files import atomic_write
from .keys import get_keygen
from .models import PeerKind, PeerRecord
from .resolver import AddressResolver
from .settings import Settings
from .subnets import parse_subnets

log = logging.getLogger(__name__)

RECORD_SUFFIX = ".peer"
REQUIRED_FIELDS = ("NAME", "TYPE", "PRIVKEY", "PUBKEY")
KNOWN_FIELDS = REQUIRED_FIELDS + ("SUBNETS",)
CLIENT_FILE_SUFFIXES = (".conf", ".png")

# un label DNS : le nom sert aussi de nom de fichier et de FQDN
NAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


# ---------- Format KEY=value ----------

def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_record(text: str, source: str = "<record>") -> Dict[str, str]:
    """
    Lit des lignes KEY=value. Le contenu n'est jamais exécuté.
    """
    data: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise InvalidRecord(f"{source}:{lineno}: expected KEY=value, got {raw!r}")
        if key in data:
            raise InvalidRecord(f"{source}:{lineno}: duplicate field {key}")
        if key not in KNOWN_FIELDS:
            log.debug("%s:%d: ignoring unknown field %s", source, lineno, key)
            continue
        data[key] = _unquote(value.strip())
    return data


def dump_record(record: PeerRecord) -> str:
    lines = [
        f"NAME={record.name}",
        f"TYPE={record.kind.value}",
        f"PRIVKEY={record.private_key}",
        f"PUBKEY={record.public_key}",
        f"SUBNETS={','.join(record.subnets)}",
    ]
    return "\n".join(lines) + "\n"


def validate_name(name: str) -> str:
    if not isinstance(name, str) or not NAME_RE.match(name):
        raise InvalidRecord(
            f"Invalid peer name {name!r} (letters, digits and '-' only, not at either end)"
        )
    return name


# ---------- Store ----------

class PeerStore:
    """
    Un fichier <name>.peer par peer dans `registry_dir`.

    Seules les clés sont persistées : l'adresse est résolue à chaque
    chargement (`name.<domain>`), le DNS reste donc la seule source de vérité.
    """

    def __init__(
        self,
        registry_dir: Path,
        domain: str,
        server_name: str,
        resolver: AddressResolver,
        keygen,
        clients_dir: Optional[Path] = None,
    ):
        self.registry_dir = Path(registry_dir)
        self.domain = domain
        self.server_name = server_name
        self.resolver = resolver
        self.keygen = keygen
        self.clients_dir = Path(clients_dir) if clients_dir is not None else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PeerStore":
        return cls(
            registry_dir=Path(settings.registry_dir),
            domain=settings.domain,
            server_name=settings.server_name,
            resolver=AddressResolver(hosts=settings.hosts),
            keygen=get_keygen(settings.keygen),
            clients_dir=Path(settings.clients_dir),
        )

    def path_for(self, name: str) -> Path:
        return self.registry_dir / f"{validate_name(name)}{RECORD_SUFFIX}"

    def fqdn(self, name: str) -> str:
        return f"{name}.{self.domain}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def _check_kind(self, name: str, kind: PeerKind) -> None:
        if kind is PeerKind.SERVER and name != self.server_name:
            raise InvalidPeerType(
                f"Only '{self.server_name}' may be the server (got '{name}')"
            )
        if kind is PeerKind.CLIENT and name == self.server_name:
            raise InvalidPeerType(f"'{name}' is the server name and cannot be a client")

    # ---------- Création ----------

    def create(
        self,
        name: str,
        kind: PeerKind | str,
        subnets: Iterable[str] | str | None = None,
        overwrite: bool = False,
    ) -> PeerRecord:
        path = self.path_for(name)
        kind = kind if isinstance(kind, PeerKind) else PeerKind.parse(kind)
        self._check_kind(name, kind)

        if path.exists() and not overwrite:
            raise DuplicateName(f"Peer '{name}' already exists")

        subnets = parse_subnets(subnets)
        # le DNS doit connaître le peer avant qu'on lui génère des clés
        address = self.resolver.resolve(self.fqdn(name))

        private_key, public_key = self.keygen.generate()
        if not private_key or not public_key:
            raise KeygenFailure(f"Key generator returned an empty key for '{name}'")

        record = PeerRecord(
            name=name,
            kind=kind,
            private_key=private_key,
            public_key=public_key,
            subnets=subnets,
            address=address,
        )
        atomic_write(path, dump_record(record))
        log.info("created %s peer %s (%s)", kind.value, name, address)
        return record

    # ---------- Lecture ----------

    def load(self, name: str) -> PeerRecord:
        path = self.path_for(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFound(f"Peer '{name}' does not exist") from None
        except UnicodeDecodeError:
            raise InvalidRecord(f"{path}: not valid UTF-8") from None

        data = parse_record(text, source=str(path))
        missing = [k for k in REQUIRED_FIELDS if not data.get(k)]
        if missing:
            raise InvalidRecord(f"{path}: missing field(s) {', '.join(missing)}")
        if data["NAME"] != name:
            raise InvalidRecord(f"{path}: NAME={data['NAME']} does not match file name")

        kind = PeerKind.parse(data["TYPE"])
        self._check_kind(name, kind)

        record = PeerRecord(
            name=name,
            kind=kind,
            private_key=data["PRIVKEY"],
            public_key=data["PUBKEY"],
            subnets=parse_subnets(data.get("SUBNETS", "")),
            address=self.resolver.resolve(self.fqdn(name)),
        )
        return record

    def names(self) -> List[str]:
        if not self.registry_dir.is_dir():
            return []
        return sorted(
            p.name[: -len(RECORD_SUFFIX)]
            for p in self.registry_dir.iterdir()
            if p.is_file() and p.name.endswith(RECORD_SUFFIX) and not p.name.startswith(".")
        )

    def list_all(self) -> Iterator[PeerRecord]:
        """Tous les peers triés par nom ; le premier enregistrement invalide interrompt tout."""
        for name in self.names():
            yield self.load(name)

    # ---------- Suppression ----------

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        if name == self.server_name:
            raise InvalidPeerType(
                f"'{name}' is the server and cannot be removed (use 'vpn init --force' to rekey it)"
            )
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFound(f"Peer '{name}' does not exist") from None

        if self.clients_dir is not None:
            # la config et son QR code contiennent la clé privée
            for suffix in CLIENT_FILE_SUFFIXES:
                generated = self.clients_dir / f"{name}{suffix}"
                if generated.exists():
                    generated.unlink()
                    log.info("removed %s", generated)
        log.info("deleted peer %s", name)
