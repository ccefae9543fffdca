# src/wg_registry/resolver.py
from __future__ import annotations
import ipaddress
import logging
import socket
from typing import Callable, Dict, Optional

from .errors import UnresolvableName

log = logging.getLogger(__name__)


def dns_lookup(fqdn: str) -> Optional[str]:
    """Première adresse IPv4 de `fqdn`, ou None."""
    try:
        infos = socket.getaddrinfo(fqdn, None, socket.AF_INET, socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError):
        return None
    for info in infos:
        return info[4][0]
    return None


class AddressResolver:
    """
    Adresse IPv4 d'un peer. Le DNS reste la seule source de vérité :
    rien n'est mis en cache entre deux appels.
    `hosts` permet de forcer quelques noms (FQDN -> IPv4) avant le DNS.
    """

    def __init__(
        self,
        lookup: Callable[[str], Optional[str]] = dns_lookup,
        hosts: Optional[Dict[str, str]] = None,
    ):
        self._lookup = lookup
        self._hosts = {k.lower().rstrip("."): v for k, v in (hosts or {}).items()}

    def resolve(self, fqdn: str) -> str:
        key = fqdn.lower().rstrip(".")
        address = self._hosts.get(key)
        if address is None:
            address = self._lookup(fqdn)
        if not address:
            raise UnresolvableName(f"Cannot resolve '{fqdn}' (add it to DNS first)")

        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            raise UnresolvableName(f"'{fqdn}' resolved to invalid address '{address}'") from None
        if ip.version != 4:
            raise UnresolvableName(f"'{fqdn}' resolved to non-IPv4 address '{address}'")

        log.debug("resolved %s -> %s", fqdn, address)
        return str(ip)
