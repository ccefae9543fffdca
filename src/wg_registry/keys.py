# src/wg_registry/keys.py
from __future__ import annotations
import base64
import logging
import subprocess
from typing import List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import x25519

from .errors import KeygenFailure

log = logging.getLogger(__name__)


# ---------- wg(8) ----------

def _run(cmd: List[str], stdin: Optional[str] = None) -> str:
    try:
        out = subprocess.run(
            cmd, input=stdin, capture_output=True, text=True, check=True
        ).stdout.strip()
    except FileNotFoundError:
        raise KeygenFailure(f"'{cmd[0]}' not found (install wireguard-tools or use keygen 'x25519')") from None
    except subprocess.CalledProcessError as e:
        raise KeygenFailure(f"{' '.join(cmd)} failed: {e.stderr.strip()}") from None
    if not out:
        raise KeygenFailure(f"{' '.join(cmd)} produced no output")
    return out


class WgKeygen:
    """
    Génère les clés avec wg(8).
    Nécessite 'wg' installé sur la machine.
    """

    name = "wg"

    def generate(self) -> tuple[str, str]:
        priv = _run(["wg", "genkey"])
        return priv, self.derive(priv)

    def derive(self, private_key: str) -> str:
        # pubkey lit la clé privée sur stdin
        return _run(["wg", "pubkey"], stdin=private_key + "\n")


# ---------- cryptography ----------

class X25519Keygen:
    """Same curve25519 keys as wg(8), without needing wireguard-tools."""

    name = "x25519"

    def generate(self) -> tuple[str, str]:
        priv = x25519.X25519PrivateKey.generate()
        raw = priv.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        private_key = base64.b64encode(raw).decode("ascii")
        return private_key, self._public_of(priv)

    def derive(self, private_key: str) -> str:
        try:
            raw = base64.b64decode(private_key.strip(), validate=True)
            priv = x25519.X25519PrivateKey.from_private_bytes(raw)
        except ValueError as e:
            raise KeygenFailure(f"Invalid private key: {e}") from None
        return self._public_of(priv)

    @staticmethod
    def _public_of(priv: x25519.X25519PrivateKey) -> str:
        raw = priv.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return base64.b64encode(raw).decode("ascii")


KEYGENS = {
    WgKeygen.name: WgKeygen,
    X25519Keygen.name: X25519Keygen,
}


def get_keygen(name: str):
    try:
        return KEYGENS[name]()
    except KeyError:
        raise KeygenFailure(f"Unknown keygen '{name}' (expected one of {', '.join(sorted(KEYGENS))})") from None
