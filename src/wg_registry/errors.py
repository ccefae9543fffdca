# src/wg_registry/errors.py
from __future__ import annotations


class RegistryError(Exception):
    """Base class: every error is terminal for the current command."""


class DuplicateName(RegistryError):
    pass


class NotFound(RegistryError):
    pass


class UnresolvableName(RegistryError):
    pass


class InvalidRecord(RegistryError):
    pass


class InvalidPeerType(RegistryError):
    pass


class ConfigLoadFailure(RegistryError):
    pass


class KeygenFailure(RegistryError):
    pass
