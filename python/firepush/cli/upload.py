#!/usr/bin/env python3
"""
firepush/cli/upload.py

CLI for pushing JSONL documents into a Firestore collection:
  - upload
  - validate (parse the key file and JSONL without touching the network)

Exit codes: 0 when every document was written, 1 on invalid input or a
fatal authentication failure, 2 when some documents failed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Callable, Coroutine, List, Optional

from firepush.auth.assertion import SigningError
from firepush.auth.token import TokenExchangeError
from firepush.models.credentials import CredentialError, load_service_account_key
from firepush.models.settings import UploadSettings
from firepush.models.upload import UploadLogEntry, UploadProgress
from firepush.upload.batch import BatchUploader
from firepush.upload.progress import ProgressReporter
from firepush.utils.collection import validate_collection_name
from firepush.utils.jsonl import load_jsonl, require_documents

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_PARTIAL = 2


#
# Subcommand handlers
#
async def run_upload(args: argparse.Namespace) -> int:
    """
    Upload every document of --file into --collection and print a summary.
    """
    documents = await _load_documents(args.file)
    if documents is None:
        return EXIT_INVALID
    try:
        credentials = await load_service_account_key(args.credentials)
    except CredentialError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID

    try:
        settings = _build_upload_settings(args)
    except ValueError as exc:
        print(f"Error: invalid upload settings: {exc}", file=sys.stderr)
        return EXIT_INVALID
    reporter = ProgressReporter(
        max_entries=settings.max_log_entries,
        on_progress=None if args.json else _print_progress,
        on_log=None if args.json else _print_log,
    )
    async with BatchUploader(credentials, settings=settings, reporter=reporter) as uploader:
        try:
            result = await uploader.upload(args.collection, documents)
        except (ValueError, SigningError, TokenExchangeError) as exc:
            print(f"Error: upload aborted: {exc}", file=sys.stderr)
            return EXIT_INVALID

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        progress = result.progress
        print(
            f"{progress.completed} uploaded, {progress.failed} failed "
            f"of {progress.total} ({progress.percentage}%)"
        )
    return EXIT_OK if result.ok else EXIT_PARTIAL


async def run_validate(args: argparse.Namespace) -> int:
    """
    Check the key file, the collection name and the JSONL file offline.
    """
    name_error = validate_collection_name(args.collection)
    if name_error:
        print(f"Error: {name_error}", file=sys.stderr)
        return EXIT_INVALID
    try:
        credentials = await load_service_account_key(args.credentials)
    except CredentialError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INVALID
    documents = await _load_documents(args.file)
    if documents is None:
        return EXIT_INVALID

    print(
        json.dumps(
            {
                "project_id": credentials.project_id,
                "client_email": credentials.client_email,
                "collection": args.collection,
                "documents": len(documents),
            },
            indent=2,
        )
    )
    return EXIT_OK


#
# Helpers
#
async def _load_documents(path: str) -> Optional[List[Any]]:
    try:
        parsed = await load_jsonl(path)
        return require_documents(parsed)
    except OSError as exc:
        print(f"Error reading '{path}': {exc}", file=sys.stderr)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
    return None


def _build_upload_settings(args: argparse.Namespace) -> UploadSettings:
    """
    Construct an UploadSettings object from CLI arguments.
    """
    return UploadSettings(
        firestore_url=args.firestore_url,
        batch_size=args.batch_size,
        batch_delay_seconds=args.batch_delay,
        write_attempts=args.write_attempts,
        verify_ssl=not args.no_verify_ssl,
    )


def _print_progress(progress: UploadProgress) -> None:
    print(
        f"\r[{progress.percentage:3d}%] {progress.completed} ok, {progress.failed} failed",
        end="",
        file=sys.stderr,
    )


def _print_log(entry: UploadLogEntry) -> None:
    line = f"{entry.kind.value.upper():7} {entry.message}"
    if entry.details:
        line += f" ({entry.details})"
    print(f"\r{line}", file=sys.stderr)


def _add_input_args(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--credentials", required=True, help="Service account JSON key file."
    )
    subparser.add_argument(
        "--collection", required=True, help="Target Firestore collection."
    )
    subparser.add_argument(
        "--file", required=True, help="JSONL file, one document per line."
    )


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point for Firestore uploads:
      - upload
      - validate
    """
    parser = argparse.ArgumentParser(
        prog="firepush-upload",
        description="Upload JSONL documents to a Firestore collection as a service account.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Python logging level (default: WARNING).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="Sub-command to run. Use -h/--help after a subcommand for more usage details.",
    )

    #
    # upload
    #
    upload_parser = subparsers.add_parser("upload", help="Upload documents.")
    _add_input_args(upload_parser)
    upload_parser.add_argument(
        "--batch-size",
        type=int,
        default=5,
        help="Documents written concurrently per group (default: 5).",
    )
    upload_parser.add_argument(
        "--batch-delay",
        type=float,
        default=0.2,
        help="Pause in seconds between groups (default: 0.2).",
    )
    upload_parser.add_argument(
        "--write-attempts",
        type=int,
        default=1,
        help="Attempts per document write; 1 disables retries (default: 1).",
    )
    upload_parser.add_argument(
        "--firestore-url",
        default="https://firestore.googleapis.com",
        help="Firestore REST host (default: https://firestore.googleapis.com).",
    )
    upload_parser.add_argument(
        "--no-verify-ssl",
        action="store_true",
        default=False,
        help="Disable TLS certificate verification.",
    )
    upload_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the final result, including the log, as JSON.",
    )
    upload_parser.set_defaults(func=run_upload)

    #
    # validate
    #
    validate_parser = subparsers.add_parser(
        "validate", help="Validate inputs without uploading."
    )
    _add_input_args(validate_parser)
    validate_parser.set_defaults(func=run_validate)

    #
    # Parse + run
    #
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    func: Callable[[argparse.Namespace], Coroutine[Any, Any, int]] = args.func
    sys.exit(asyncio.run(func(args)))


if __name__ == "__main__":
    main()
