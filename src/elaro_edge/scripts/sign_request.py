"""Print signed-request headers for a payload.

Useful for exercising the functions with curl:

    elaro-sign --body-file payload.json --curl http://localhost:8000/functions/v1/send-welcome-email
"""
from __future__ import annotations

import argparse
import os
import shlex
import sys

from elaro_edge.core.security import is_strong_secret
from elaro_edge.services.request_signer import sign_request


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sign a request body for the edge functions")
    parser.add_argument(
        "--body-file",
        default="-",
        help="File holding the exact request body ('-' reads stdin).",
    )
    parser.add_argument(
        "--secret",
        default=None,
        help="Shared secret (defaults to INTERNAL_HMAC_SECRET).",
    )
    parser.add_argument("--timestamp", type=int, default=None, help="Override Unix timestamp")
    parser.add_argument("--nonce", default=None, help="Override nonce")
    parser.add_argument(
        "--curl",
        metavar="URL",
        default=None,
        help="Print a ready-to-run curl command for URL instead of bare headers.",
    )
    return parser


def _read_body(path: str) -> bytes:
    if path == "-":
        return sys.stdin.buffer.read()
    with open(path, "rb") as handle:
        return handle.read()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    secret = args.secret or os.getenv("INTERNAL_HMAC_SECRET")
    if not is_strong_secret(secret):
        print("[sign] ERROR: secret missing or shorter than 32 bytes", file=sys.stderr)
        return 1

    body = _read_body(args.body_file)
    headers = sign_request(secret, body, timestamp=args.timestamp, nonce=args.nonce)

    if args.curl:
        parts = ["curl", "-X", "POST", args.curl, "-H", "Content-Type: application/json"]
        for name, value in headers.items():
            parts += ["-H", f"{name}: {value}"]
        parts += ["--data-binary", body.decode("utf-8", errors="replace")]
        print(shlex.join(parts))
    else:
        for name, value in headers.items():
            print(f"{name}: {value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
