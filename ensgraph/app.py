import argparse
import json
from pathlib import Path

from .env import load_env

from . import __version__
from .config import Settings
from .database import RemoteEdgeStore, pull_remote_to_local, sync_local_to_remote
from .engine import ProfileResolutionEngine, ResolvedProfile, SearchSession
from .graph import GraphEditor
from .logger import configure_logging, get_logger
from .schema import parse_pairs_file
from .storage import DuplicateEdgeError, EdgeStore

TEXT_LABELS = {
    "com.twitter": "Twitter",
    "com.github": "GitHub",
    "com.discord": "Discord",
    "org.telegram": "Telegram",
    "vnd.twitter": "Twitter",
}


def format_label(key: str) -> str:
    return TEXT_LABELS.get(key) or key[:1].upper() + key[1:]


def load_settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}")
    return settings.with_overrides(
        rpc_url=getattr(args, "rpc_url", None),
        edges_path=getattr(args, "store", None),
        database_url=getattr(args, "database_url", None),
    )


def print_profile(profile: ResolvedProfile) -> None:
    rows = [
        ("ENS Name", profile.queried_name),
        ("Owner", profile.owner_address),
        ("Resolved Address", profile.resolved_address),
        ("Resolver", profile.resolver_address),
        ("Expiry Date", profile.expiry.date().isoformat() if profile.expiry else None),
    ]
    print("Basic Information")
    for label, value in rows:
        if value:
            print(f"  {label}: {value}")

    if profile.text_records:
        print("Profile Details")
        for key, value in profile.text_records.items():
            print(f"  {format_label(key)}: {value}")

    if profile.coin_addresses:
        print("Cryptocurrency Addresses")
        for coin, address in profile.coin_addresses.items():
            print(f"  {coin}: {address}")

    if profile.content_hash:
        print("Content")
        print(f"  Content Hash: {profile.content_hash}")


def cmd_profile(args: argparse.Namespace) -> None:
    settings = args.settings
    session = SearchSession(ProfileResolutionEngine(settings=settings))
    profile = session.search(args.name)

    if args.metrics:
        get_logger().log_metrics_summary()

    if args.json:
        print(json.dumps(profile.to_dict(), indent=2, ensure_ascii=False))
    elif profile.outcome == "profile":
        if profile.has_data:
            print_profile(profile)
        else:
            print(f"{profile.queried_name} has a resolver but no owner, address or text records set.")

    if profile.outcome == "error":
        raise SystemExit(f"Error: {profile.fatal_error}")
    if profile.outcome == "not_found":
        if not args.json:
            print("No Record Found")
            print("This ENS name doesn't have a resolver or record on the blockchain.")
        raise SystemExit(1)


def _read_pairs(input_path: Path):
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    return parse_pairs_file(input_path)


def cmd_validate(args: argparse.Namespace) -> None:
    pairs, errors = _read_pairs(Path(args.input))
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print(f"Valid: {len(pairs)} pair{'' if len(pairs) == 1 else 's'}")


def cmd_graph(args: argparse.Namespace) -> None:
    settings = args.settings
    pairs, errors = _read_pairs(Path(args.input))
    editor = GraphEditor(EdgeStore(settings.edges_path), pairs)
    graph = editor.graph()

    if errors:
        print("Validation Errors:")
        for e in errors:
            print(f" - {e}")

    if args.json:
        print(json.dumps(graph.to_dict(), indent=2, ensure_ascii=False))
        return

    if not graph.links:
        print("No graph data.")
        return
    print(graph.summary())
    for link in graph.links:
        marker = "*" if editor.is_custom(link["source"], link["target"]) else " "
        print(f" {marker} {link['source']} <-> {link['target']}")


def _remote(settings: Settings) -> RemoteEdgeStore:
    if not settings.remote_configured:
        raise SystemExit("No database configured. Set ENSGRAPH_DATABASE_URL or pass --database-url.")
    return RemoteEdgeStore(settings.database_url)


def cmd_edges(args: argparse.Namespace) -> None:
    settings = args.settings
    store = EdgeStore(settings.edges_path)
    text_pairs = _read_pairs(Path(args.input))[0] if getattr(args, "input", None) else []
    editor = GraphEditor(store, text_pairs)
    action = args.action

    if action == "list":
        edges = store.list_custom_edges()
        if not edges:
            print("No custom edges.")
            return
        print(f"Found {len(edges)} custom edge{'' if len(edges) == 1 else 's'} in {store.path}:")
        for a, b in edges:
            print(f"  {a} <-> {b}")

    elif action == "add":
        try:
            a, b = editor.connect(args.a, args.b)
        except DuplicateEdgeError as e:
            raise SystemExit(str(e))
        except ValueError as e:
            raise SystemExit(f"Invalid edge: {e}")
        print(f"Added: {a} <-> {b}")
        if args.remote and not _remote(settings).add_friendship(a, b):
            print("[warn] remote store update failed")

    elif action == "remove":
        try:
            removed = editor.delete_edge(args.a, args.b)
        except ValueError as e:
            raise SystemExit(str(e))
        print("Removed." if removed else "Edge not found.")
        if args.remote and not _remote(settings).delete_friendship(args.a, args.b):
            print("[warn] remote store update failed")

    elif action == "clear":
        removed = editor.clear_custom_edges()
        print(f"Cleared {removed} custom edge{'' if removed == 1 else 's'}.")

    elif action == "push":
        pushed, failed = sync_local_to_remote(store, _remote(settings))
        print(f"Done. pushed={pushed} failed={failed}")

    elif action == "pull":
        added = pull_remote_to_local(store, _remote(settings))
        print(f"Done. added={added} total={len(store)}")


def main(argv=None):
    # Load .env if present (ENSGRAPH_RPC_URL, ENSGRAPH_DATABASE_URL, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="ensgraph", description="ENS profile viewer and social graph CLI")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    prof = subparsers.add_parser("profile", help="Resolve an ENS name into its profile")
    prof.add_argument("name", help="ENS name, e.g. vitalik.eth")
    prof.add_argument("--rpc-url", help="JSON-RPC endpoint (or set ENSGRAPH_RPC_URL)")
    prof.add_argument("--json", action="store_true", help="Print the profile as JSON")
    prof.add_argument("--metrics", action="store_true", help="Log lookup metrics after resolving")
    prof.set_defaults(func=cmd_profile)

    val = subparsers.add_parser("validate", help="Validate a file of name pairs, one \"a.eth, b.eth\" per line")
    val.add_argument("--input", required=True, help="Path to pairs text file")
    val.set_defaults(func=cmd_validate)

    grp = subparsers.add_parser("graph", help="Build the social graph from a pairs file plus custom edges")
    grp.add_argument("--input", required=True, help="Path to pairs text file")
    grp.add_argument("--store", help="Path to custom edge store (default: data/edges.json)")
    grp.add_argument("--json", action="store_true", help="Print nodes and links as JSON")
    grp.set_defaults(func=cmd_graph)

    edg = subparsers.add_parser("edges", help="Manage user-authored custom edges")
    edg_sub = edg.add_subparsers(dest="action", required=True)
    for action, help_text in [
        ("list", "List custom edges"),
        ("add", "Connect two names"),
        ("remove", "Delete a custom edge"),
        ("clear", "Delete all custom edges"),
        ("push", "Copy local custom edges to the remote database"),
        ("pull", "Merge remote database edges into the local store"),
    ]:
        p = edg_sub.add_parser(action, help=help_text)
        if action in ("add", "remove"):
            p.add_argument("a", help="First ENS name")
            p.add_argument("b", help="Second ENS name")
            p.add_argument("--remote", action="store_true", help="Mirror the change to the remote database")
            p.add_argument("--input", help="Pairs file whose edges are treated as input edges")
        p.add_argument("--store", help="Path to custom edge store (default: data/edges.json)")
        p.add_argument("--database-url", help="SQLAlchemy URL of the remote store (or set ENSGRAPH_DATABASE_URL)")
        p.set_defaults(func=cmd_edges)

    args = parser.parse_args(argv)
    args.settings = load_settings(args)
    try:
        configure_logging(args.settings.log_level, args.settings.log_dir)
    except OSError as e:
        raise SystemExit(f"Cannot open log directory {args.settings.log_dir}: {e}")

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
