#!/usr/bin/env python3
"""
Command-line front end for the upload client.

Run with: python -m client.cli <command>
Commands:
    upload FILE --subject ID --year YYYY [--subcategory ID] [--topic TEXT]
    init-storage
    check-admin [--email EMAIL]
"""

import argparse
import logging
import os
import signal
import sys
import threading

from dotenv import load_dotenv

from client.errors import UploadFailure
from client.transfer import TransferChannel
from client.uploader import LocalFile, SubjectInfo, UploadClient, UploadRequest, UploadState


def configure_logging(verbose: bool):
    """Configure logging for the CLI process."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("upload-cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exam paper upload client")
    parser.add_argument(
        "--api-url",
        default=os.getenv("UPLOAD_API_URL", "http://localhost:8000"),
        help="Base URL of the upload API (default: $UPLOAD_API_URL or http://localhost:8000)",
    )
    parser.add_argument(
        "--token",
        default=os.getenv("UPLOAD_ACCESS_TOKEN"),
        help="Bearer access token (default: $UPLOAD_ACCESS_TOKEN)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log attempts and retries")

    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Upload one PDF")
    upload.add_argument("file", help="Path to the PDF")
    upload.add_argument("--subject", required=True, help="Subject ID")
    upload.add_argument("--year", required=True, help="Exam year (YYYY)")
    upload.add_argument("--subcategory", help="SubCategory ID")
    upload.add_argument("--topic", help="Paper topic/name")
    upload.add_argument(
        "--requires-subcategory",
        action="store_true",
        help="The subject has subcategories, so --subcategory is mandatory",
    )

    commands.add_parser("init-storage", help="Create or reconfigure the papers bucket")

    check = commands.add_parser("check-admin", help="Ask whether the token belongs to an admin")
    check.add_argument("--email", help="Your email, for the fallback comparison")

    return parser


def run_upload(client: UploadClient, args) -> int:
    request = UploadRequest(
        file=LocalFile.from_path(args.file),
        subject_id=args.subject,
        year=args.year,
        sub_category_id=args.subcategory,
        topic=args.topic,
    )

    outcome: dict = {}

    def work():
        outcome["result"] = client.upload(request)

    # Upload on a worker thread so Ctrl-C can cancel it
    worker = threading.Thread(target=work, name="upload")
    previous = signal.signal(signal.SIGINT, lambda sig, frame: client.cancel())
    try:
        worker.start()
        while worker.is_alive():
            worker.join(timeout=0.2)
    finally:
        signal.signal(signal.SIGINT, previous)

    result = outcome["result"]
    sys.stdout.write("\n")
    if result.state == UploadState.SUCCEEDED:
        print(f"{result.message}: {result.file_url}")
        return 0

    print(f"Upload failed: {result.message}", file=sys.stderr)
    if result.file_url:
        print(f"Stored file without a record: {result.file_url}", file=sys.stderr)
    return 1


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.verbose)

    def show_progress(percent: int):
        sys.stdout.write(f"\rUploading file... {percent:3d}%")
        sys.stdout.flush()

    channel = TransferChannel(args.api_url, access_token=args.token)
    subjects = {}
    if getattr(args, "requires_subcategory", False):
        subjects[args.subject] = SubjectInfo(id=args.subject, has_subcategories=True)
    client = UploadClient(channel, subjects=subjects, on_progress=show_progress)

    try:
        if args.command == "upload":
            return run_upload(client, args)

        if args.command == "init-storage":
            response = client.initialize_storage()
            print(response.body.get("message") or "Storage system is ready for uploads.")
            return 0

        if args.command == "check-admin":
            is_admin = client.check_admin(args.email, os.getenv("ADMIN_EMAIL"))
            print("admin" if is_admin else "not admin")
            return 0 if is_admin else 1
    except UploadFailure as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"{args.command} failed: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Cannot read {getattr(args, 'file', 'file')}: {e}", file=sys.stderr)
        return 1
    finally:
        channel.close()

    return 2


if __name__ == "__main__":
    sys.exit(main())
