import argparse
import logging
import sys
from pathlib import Path
import qrcode

from wg_registry.errors import NotFound, RegistryError
from wg_registry.files import registry_lock
from wg_registry.init_server import init_server
from wg_registry.models import PeerKind
from wg_registry.settings import load_settings
from wg_registry.store import PeerStore
from wg_registry.wireguard import ConfigRenderer


def _open(args):
    settings = load_settings(args.settings)
    store = PeerStore.from_settings(settings)
    return settings, store, ConfigRenderer(store, settings)


def _report(result):
    print(f"[+] Fichier serveur mis à jour : {result.server_path}")
    for name, path in result.client_paths.items():
        print(f"[+] Client {name} : {path}")
    for path in result.removed:
        print(f"[-] Supprimé : {path}")
    for path in result.hooks_created:
        print(f"[+] Hook par défaut créé dans {path}")


def _client_conf(renderer, name):
    confs = renderer.render_clients()
    if name not in confs:
        raise NotFound(f"Client '{name}' does not exist")
    return confs[name]


# ---------------------------------------------------
# Commande : init (initialisation du serveur)
# ---------------------------------------------------

def cmd_init(args):
    print("[*] Initialisation du serveur WireGuard...")

    settings, server, result = init_server(
        domain=args.domain,
        server_name=args.server_name,
        interface=args.interface,
        network=args.network,
        listen_port=args.port,
        endpoint=args.endpoint,
        keygen=args.keygen,
        hooks_dir=args.hooks_dir,
        overwrite=args.force,
        settings_path=args.settings,
    )

    print("[+] Serveur initialisé :", server.fqdn(settings.domain))
    print("[+] Adresse :", server.address)
    _report(result)


# ---------------------------------------------------
# Commande : add-peer
# ---------------------------------------------------

def cmd_add_peer(args):
    settings, store, renderer = _open(args)

    with registry_lock(store.registry_dir):
        peer = store.create(args.name, PeerKind.CLIENT, args.subnets, overwrite=args.force)
        result = renderer.write_all()

    print(f"[+] Peer ajouté : {peer.name} ({peer.address})")
    _report(result)
    print("[!] Pense à appliquer la config avec :")
    print(f"    sudo wg-quick down {settings.interface} && sudo wg-quick up {settings.interface}")


# ---------------------------------------------------
# Commande : remove-peer
# ---------------------------------------------------

def cmd_remove_peer(args):
    settings, store, renderer = _open(args)

    with registry_lock(store.registry_dir):
        store.delete(args.name)
        result = renderer.write_all()

    print(f"[OK] Peer supprimé : {args.name}")
    _report(result)


# ---------------------------------------------------
# Commande : list-peers
# ---------------------------------------------------

def cmd_list(args):
    settings, store, renderer = _open(args)
    peers = list(store.list_all())

    print("=== Serveur ===")
    server = next((p for p in peers if p.is_server), None)
    if server is None:
        print("Non initialisé.")
    else:
        print(f"Nom       : {server.fqdn(settings.domain)}")
        print(f"Interface : {settings.interface}")
        print(f"Adresse   : {server.address}")
        print(f"Port      : {settings.listen_port}")
        print(f"Endpoint  : {settings.endpoint or server.address}\n")

    print("=== Peers ===")
    clients = [p for p in peers if not p.is_server]
    if not clients:
        print("Aucun peer.")
    for p in clients:
        subnets = f" + {', '.join(p.subnets)}" if p.subnets else ""
        print(f"- {p.name} ({p.address}){subnets}")


# ---------------------------------------------------
# Commande : render
# ---------------------------------------------------

def cmd_render(args):
    settings, store, renderer = _open(args)
    with registry_lock(store.registry_dir):
        result = renderer.write_all()
    _report(result)


# ---------------------------------------------------
# Commande : export-peer / generate-qr
# ---------------------------------------------------

def cmd_export_peer(args):
    settings, store, renderer = _open(args)
    conf = _client_conf(renderer, args.name)

    print("--- Configuration ---\n")
    print(conf)


def cmd_generate_qr(args):
    settings, store, renderer = _open(args)
    conf = _client_conf(renderer, args.name)

    img = qrcode.make(conf)
    path = settings.client_qr_path(args.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)

    print(f"[OK] QR code généré : {path}")


# ---------------------------------------------------
# CLI / Parser
# ---------------------------------------------------

def build_parser():
    parser = argparse.ArgumentParser(prog="vpn")
    parser.add_argument("--settings", type=Path, default=None,
                        help="settings file (default: $WG_REGISTRY_SETTINGS or data/settings.json)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd")

    # init
    p_init = sub.add_parser("init")
    p_init.add_argument("--domain", required=True)
    p_init.add_argument("--server-name", required=True)
    p_init.add_argument("--interface", default="wg0")
    p_init.add_argument("--network", default="10.8.0.0/24")
    p_init.add_argument("--endpoint", required=False)
    p_init.add_argument("--port", type=int, default=51820)
    p_init.add_argument("--keygen", choices=["wg", "x25519"], default="wg")
    p_init.add_argument("--hooks-dir", default="/etc/wireguard/hooks")
    p_init.add_argument("--force", action="store_true", help="regenerate the server keys")
    p_init.set_defaults(func=cmd_init)

    # add-peer
    p_add = sub.add_parser("add-peer")
    p_add.add_argument("name")
    p_add.add_argument("--subnets", default="", help="extra CIDRs routed by this peer, comma separated")
    p_add.add_argument("--force", action="store_true", help="replace an existing peer (new keys)")
    p_add.set_defaults(func=cmd_add_peer)

    # list-peers
    p_list = sub.add_parser("list-peers")
    p_list.set_defaults(func=cmd_list)

    # remove-peer
    p_rm = sub.add_parser("remove-peer")
    p_rm.add_argument("name")
    p_rm.set_defaults(func=cmd_remove_peer)

    # render
    p_render = sub.add_parser("render")
    p_render.set_defaults(func=cmd_render)

    p_export = sub.add_parser("export-peer")
    p_export.add_argument("name")
    p_export.set_defaults(func=cmd_export_peer)

    # generate-qr
    p_qr = sub.add_parser("generate-qr")
    p_qr.add_argument("name")
    p_qr.set_defaults(func=cmd_generate_qr)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    try:
        args.func(args)
    except (RegistryError, OSError) as e:
        print(f"[ERREUR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
