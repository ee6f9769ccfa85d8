"""Module entry point for the bucket explorer."""
import argparse
import logging
import os
import sys
import threading

from .presenter import ExplorerPresenter
from .shell_view import ExplorerShell


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="s3-explorer", description="Browse a bucket as nested folders.")
    parser.add_argument("--profile", help="name of a saved connection profile")
    parser.add_argument("--bucket", default=os.environ.get("AWS_S3_BUCKET", ""))
    parser.add_argument("--endpoint-url", default=os.environ.get("AWS_ENDPOINT_URL", ""))
    parser.add_argument("--access-key", default=os.environ.get("AWS_ACCESS_KEY", ""))
    parser.add_argument("--secret-key", default=os.environ.get("AWS_SECRET_KEY", ""))
    parser.add_argument("--region", default=os.environ.get("AWS_REGION", ""))
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    presenter = ExplorerPresenter()
    profile = args.profile or (None if args.bucket else presenter.maybe_auto_connect_profile())
    if not profile and not args.bucket:
        print("A bucket (--bucket or AWS_S3_BUCKET) or a saved --profile is required.", file=sys.stderr)
        return 2

    finished = threading.Event()
    errors: list[str] = []
    callbacks = {"on_success": lambda outcome: None, "on_error": errors.append, "on_done": finished.set}
    if profile:
        presenter.connect(profile_name=profile, **callbacks)
    else:
        presenter.connect_with(
            bucket=args.bucket,
            endpoint_url=args.endpoint_url,
            access_key=args.access_key,
            secret_key=args.secret_key,
            region=args.region,
            **callbacks,
        )
    finished.wait()
    if errors:
        print(f"Could not connect: {errors[0]}", file=sys.stderr)
        return 1

    ExplorerShell(presenter).cmdloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
