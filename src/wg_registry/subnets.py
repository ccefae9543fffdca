# src/wg_registry/subnets.py
from __future__ import annotations
import ipaddress
from typing import Iterable, List, Set, Tuple

from .errors import InvalidRecord


def split_tokens(separator: str, value: str) -> Set[str]:
    """
    Découpe une liste 'a,b,c' en ensemble de tokens, sans les vides.
    """
    if not value:
        return set()
    return {t.strip() for t in value.split(separator) if t.strip()}


def merge(separator: str, exclude: str, *inputs: str) -> str:
    """
    Fusionne plusieurs listes séparées par `separator` :
    dédoublonnage, tri lexicographique, puis retrait des tokens de `exclude`.

    >>> merge(",", "", "10.0.0.0/24,10.0.0.0/24", "10.0.1.0/24")
    '10.0.0.0/24,10.0.1.0/24'
    >>> merge(",", "10.0.1.0/24", "10.0.0.0/24,10.0.1.0/24")
    '10.0.0.0/24'
    """
    tokens: Set[str] = set()
    for value in inputs:
        tokens |= split_tokens(separator, value)

    tokens -= split_tokens(separator, exclude)
    return separator.join(sorted(tokens))


def parse_subnets(value: str | Iterable[str] | None) -> Tuple[str, ...]:
    """
    Valide une liste de CIDR (chaîne 'a,b' ou itérable) et la renvoie triée,
    sans doublons. Lève InvalidRecord sur un CIDR invalide.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        raw = split_tokens(",", value)
    else:
        raw = set()
        for item in value:
            raw |= split_tokens(",", item)

    result: List[str] = []
    for cidr in sorted(raw):
        try:
            ipaddress.ip_network(cidr, strict=False)
        except ValueError:
            raise InvalidRecord(f"Invalid subnet '{cidr}'") from None
        result.append(cidr)
    return tuple(result)


def network_prefix(network_cidr: str) -> int:
    return ipaddress.ip_network(network_cidr, strict=False).prefixlen
