# src/wg_registry/hooks.py
from __future__ import annotations
import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)

HOOK_STEPS = ("PreUp", "PostUp", "PreDown", "PostDown")
DEFAULT_HOOK_NAME = "00-default"

DEFAULT_HOOK_TEMPLATE = """#!/bin/sh
# Hook par défaut pour {interface}. Créé une seule fois, jamais réécrit :
# il peut être modifié librement.
#
# Appel : $0 <PreUp|PostUp|PreDown|PostDown> <interface>

step="$1"
iface="$2"

case "$step" in
    PreUp)
        :
        ;;
    PostUp)
        # iptables -A FORWARD -i "$iface" -j ACCEPT
        # iptables -t nat -A POSTROUTING -o eth0 -j MASQUERADE
        :
        ;;
    PreDown)
        :
        ;;
    PostDown)
        # iptables -D FORWARD -i "$iface" -j ACCEPT
        # iptables -t nat -D POSTROUTING -o eth0 -j MASQUERADE
        :
        ;;
    *)
        echo "$0: unknown step '$step'" >&2
        exit 1
        ;;
esac
"""


def render_default_hook(interface: str) -> str:
    return DEFAULT_HOOK_TEMPLATE.format(interface=interface)


def ensure_default(hook_dir: Path, interface: str) -> bool:
    """
    Crée `hook_dir` et le hook par défaut s'il n'existe pas encore.
    Un hook existant n'est jamais touché. Retourne True si le fichier a été créé.
    """
    hook_dir = Path(hook_dir)
    hook_dir.mkdir(parents=True, exist_ok=True)
    path = hook_dir / DEFAULT_HOOK_NAME

    try:
        # O_EXCL : ne jamais écraser, même en cas de course
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o755)
    except FileExistsError:
        log.debug("hook %s already exists, left untouched", path)
        return False

    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(render_default_hook(interface))
    os.chmod(path, 0o755)
    log.info("created default hook %s", path)
    return True
