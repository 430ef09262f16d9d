#!/usr/bin/env python3
"""Manage objects in the configured bucket from the command line.

Usage:
  .venv/bin/python scripts/clouddeck_cli.py test
  .venv/bin/python scripts/clouddeck_cli.py ls photos/
  .venv/bin/python scripts/clouddeck_cli.py upload ./clip.mp4 videos/clip.mp4
  .venv/bin/python scripts/clouddeck_cli.py share videos/clip.mp4 --expires 3600

Connection parameters come from S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY,
S3_BUCKET and S3_REGION (environment or .env).
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from prometheus_client import start_http_server

from clouddeck.common.config import get_settings
from clouddeck.common.logging import setup_logging
from clouddeck.domain.formatters import format_duration, format_file_size
from clouddeck.domain.transfer import Payload, ProgressSnapshot, TransferRequest
from clouddeck.infra.storage.errors import StorageError
from clouddeck.services.base import InvalidObjectOperationError
from clouddeck.services.bundle import ServiceBundle, get_service_bundle


def _print_progress(snapshot: ProgressSnapshot) -> None:
    part = f" part {snapshot.part}" if snapshot.part else ""
    print(
        f"\r{snapshot.percentage:3d}% "
        f"{snapshot.uploaded_mb:.2f}/{snapshot.total_mb:.2f} MB{part}",
        end="",
        flush=True,
    )


def cmd_test(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    params = bundle.settings.connection_params()
    if params is None:
        print("No connection parameters configured", file=sys.stderr)
        return 2
    result = bundle.objects().test_connection(params)
    print(result.message)
    return 0 if result.success else 1


def cmd_ls(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    page = bundle.listing().list_folder(args.prefix, limit=args.limit)
    for folder in page.folders:
        print(f"{'DIR':>12}  {folder}")
    for entry in page.entries:
        print(f"{format_file_size(entry.size_bytes):>12}  {entry.key}")
    if page.next_cursor is not None:
        print("... more entries not shown")
    return 0


def cmd_upload(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    payload = Payload.from_path(args.source, content_type=args.content_type)
    key = args.key or payload.name
    if key.endswith("/"):
        key += payload.name
    request = TransferRequest(
        key=key,
        payload=payload,
        on_progress=None if args.quiet else _print_progress,
    )
    service = bundle.upload()
    plan = service.plan(request)
    if not args.quiet:
        print(
            f"Uploading {payload.name} ({format_file_size(payload.size)}) "
            f"as {plan.mode.value}"
        )
    result = service.upload(request)
    if not args.quiet:
        print()
    print(
        f"Uploaded s3://{result.bucket}/{result.key} in "
        f"{format_duration(result.duration_seconds)} "
        f"({result.attempts} attempt(s))"
    )
    return 0


def cmd_url(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    print(bundle.objects().download_url(args.key, filename=args.filename))
    return 0


def cmd_share(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    link = bundle.objects().share_link(args.key, expires_in=args.expires)
    print(link.url)
    print(f"Expires at {link.expires_at.isoformat()}")
    return 0


def cmd_rm(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    count = bundle.objects().delete_objects(args.keys)
    print(f"Deleted {count} object(s)")
    return 0


def cmd_mkdir(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    print(f"Created {bundle.objects().create_folder(args.path)}")
    return 0


def cmd_mv(bundle: ServiceBundle, args: argparse.Namespace) -> int:
    print(f"Renamed to {bundle.objects().rename_object(args.source, args.destination)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage objects in an S3 bucket")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while the command runs",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("test", help="Check the configured bucket is reachable").set_defaults(
        handler=cmd_test
    )

    ls = sub.add_parser("ls", help="List a folder")
    ls.add_argument("prefix", nargs="?", default="")
    ls.add_argument("--limit", type=int, default=None)
    ls.set_defaults(handler=cmd_ls)

    upload = sub.add_parser("upload", help="Upload a local file")
    upload.add_argument("source")
    upload.add_argument("key", nargs="?", default=None)
    upload.add_argument("--content-type", default=None)
    upload.add_argument("--quiet", action="store_true")
    upload.set_defaults(handler=cmd_upload)

    url = sub.add_parser("url", help="Print a download URL")
    url.add_argument("key")
    url.add_argument("--filename", default=None)
    url.set_defaults(handler=cmd_url)

    share = sub.add_parser("share", help="Print a shareable link")
    share.add_argument("key")
    share.add_argument("--expires", type=int, default=None, help="Seconds")
    share.set_defaults(handler=cmd_share)

    rm = sub.add_parser("rm", help="Delete objects")
    rm.add_argument("keys", nargs="+")
    rm.set_defaults(handler=cmd_rm)

    mkdir = sub.add_parser("mkdir", help="Create a folder")
    mkdir.add_argument("path")
    mkdir.set_defaults(handler=cmd_mkdir)

    mv = sub.add_parser("mv", help="Rename an object")
    mv.add_argument("source")
    mv.add_argument("destination")
    mv.set_defaults(handler=cmd_mv)
    return parser


def main(argv: Sequence[str] | None = None, bundle: ServiceBundle | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    if args.metrics_port is not None and get_settings().ENABLE_METRICS:
        start_http_server(args.metrics_port)

    bundle = bundle or get_service_bundle()
    try:
        return args.handler(bundle, args)
    except StorageError as exc:
        print(f"Error: {exc.user_message}", file=sys.stderr)
        return 1
    except (InvalidObjectOperationError, FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
