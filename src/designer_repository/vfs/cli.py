"""CLI for browsing and editing a designer repository."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import load_profile
from .errors import RepositoryError, reason_code
from .filters import FilesOnly
from .ids import decode_unique_id
from .logging_utils import configure_logging
from .models import ListingPage, OperationResult
from .repository import VFSRepository


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Designer repository CLI")
    parser.add_argument("--profile", required=True, help="Path to repository profile YAML")
    parser.add_argument("--log-path", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    ls_parser = subparsers.add_parser("ls", help="List directories and assets at a location")
    ls_parser.add_argument("location", nargs="?", default="/")

    tree_parser = subparsers.add_parser("tree", help="List all assets below a location")
    tree_parser.add_argument("location", nargs="?", default="/")

    cat_parser = subparsers.add_parser("cat", help="Print an asset by location")
    cat_parser.add_argument("location")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a directory (with parents)")
    mkdir_parser.add_argument("location")

    rmdir_parser = subparsers.add_parser("rmdir", help="Delete a directory tree")
    rmdir_parser.add_argument("location")
    rmdir_parser.add_argument("--fail-if-not-empty", action="store_true")

    put_parser = subparsers.add_parser("put", help="Create an asset from a local file")
    put_parser.add_argument("source", help="Local file to upload")
    put_parser.add_argument("--location", default="/")
    put_parser.add_argument("--name", default=None)

    rm_parser = subparsers.add_parser("rm", help="Delete an asset by location")
    rm_parser.add_argument("location")

    for command, help_text in (("cp", "Copy an asset"), ("mv", "Move an asset")):
        transfer = subparsers.add_parser(command, help=help_text)
        transfer.add_argument("source", help="Asset location or unique id")
        transfer.add_argument("destination", help="Destination directory location")
        transfer.add_argument("--name", default=None)

    cpdir_parser = subparsers.add_parser("cpdir", help="Copy a directory under another")
    cpdir_parser.add_argument("source")
    cpdir_parser.add_argument("destination")

    mvdir_parser = subparsers.add_parser("mvdir", help="Move a directory under another")
    mvdir_parser.add_argument("source")
    mvdir_parser.add_argument("destination")
    mvdir_parser.add_argument("--name", default=None)

    return parser.parse_args(argv)


def _emit(payload: object) -> None:
    print(json.dumps(payload, sort_keys=True, ensure_ascii=True))


def _emit_result(result: OperationResult) -> int:
    if result.cause is None and not result.ok:
        reason = "NO_CHANGE"
    else:
        reason = reason_code(result.cause)
    _emit({"ok": result.ok, "reason": reason})
    return 0 if result else 1


def run(args: argparse.Namespace) -> int:
    profile = load_profile(Path(args.profile))
    repository = VFSRepository(profile)

    if args.command == "ls":
        directories = repository.list_directories(args.location)
        assets = repository.list_assets(args.location)
        if directories is None or assets is None:
            _emit({"ok": False, "reason": "NOT_LISTABLE", "location": args.location})
            return 1
        page = ListingPage(location=args.location, directories=directories, assets=assets)
        print(page.model_dump_json())
        return 0
    if args.command == "tree":
        assets = repository.list_assets_recursively(args.location, FilesOnly())
        if assets is None:
            _emit({"ok": False, "reason": "NOT_LISTABLE", "location": args.location})
            return 1
        for asset in assets:
            print(f"{asset.asset_location.rstrip('/')}/{asset.full_name}")
        return 0
    if args.command == "cat":
        asset = repository.load_asset_from_path(args.location)
        if isinstance(asset.content, bytes):
            sys.stdout.buffer.write(asset.content)
        else:
            print(asset.content or "")
        return 0
    if args.command == "mkdir":
        directory = repository.create_directory(args.location)
        if directory is None:
            _emit({"ok": False, "reason": "CREATE_FAILED", "location": args.location})
            return 1
        print(directory.model_dump_json())
        return 0
    if args.command == "rmdir":
        return _emit_result(repository.delete_directory(args.location, args.fail_if_not_empty))
    if args.command == "put":
        source = Path(args.source)
        file_name = args.name or source.name
        kind_is_binary = repository.new_asset(file_name).accepts_bytes
        content = source.read_bytes() if kind_is_binary else source.read_text(encoding="utf-8")
        unique_id = repository.create_asset(repository.new_asset(file_name, args.location, content))
        _emit({"ok": True, "unique_id": unique_id, "uri": decode_unique_id(unique_id)})
        return 0
    if args.command == "rm":
        return _emit_result(repository.delete_asset_from_path(args.location))
    if args.command == "cp":
        return _emit_result(repository.copy_asset(args.source, args.destination, args.name))
    if args.command == "mv":
        return _emit_result(repository.move_asset(args.source, args.destination, args.name))
    if args.command == "cpdir":
        return _emit_result(repository.copy_directory(args.source, args.destination))
    if args.command == "mvdir":
        return _emit_result(repository.move_directory(args.source, args.destination, args.name))
    raise SystemExit(f"unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(log_path=args.log_path)
    try:
        code = run(args)
    except RepositoryError as exc:
        _emit({"ok": False, "reason": exc.code, "detail": exc.detail})
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
