
# src/wg_registry/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from .errors import InvalidPeerType


class PeerKind(str, Enum):
    SERVER = "server"
    CLIENT = "client"

    @classmethod
    def parse(cls, value: str) -> "PeerKind":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidPeerType(
                f"Invalid peer type '{value}' (expected 'server' or 'client')"
            ) from None


@dataclass(frozen=True)
class PeerRecord:
    name: str
    kind: PeerKind
    private_key: str
    public_key: str
    subnets: Tuple[str, ...] = ()  # en plus de l'adresse hôte
    address: str = field(default="", compare=False)  # jamais persistée, toujours résolue

    @property
    def is_server(self) -> bool:
        return self.kind is PeerKind.SERVER

    def fqdn(self, domain: str) -> str:
        return f"{self.name}.{domain}"
