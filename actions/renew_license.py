#!/usr/bin/env python3
"""Renew the license right now, regardless of the renewal threshold.

Runs exactly one exchange with the licensing endpoint and stores the new
license. Useful after rotating the platform signing key or when the daemon
has been down long enough for the license to lapse.

Recommended invocation:
- python -m actions.renew_license

Env vars (loaded from `.env` if present):
- VAULT_ADDR, VAULT_TOKEN (required)
- OPENDAX_ADDR (required)
- APP_NAME (optional, default: finex)
- OPENDAX_TIMEOUT_S (optional)
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List

from dotenv import load_dotenv

from core.errors import LicenseRenewalError
from core.license_daemon import DEFAULT_APP_NAME, build_client, build_secret_store
from core.license_renewal import LicenseRenewer


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Request and store a new license")
    p.add_argument(
        "--app-name",
        default=None,
        help=f"License component (default: APP_NAME env or {DEFAULT_APP_NAME})",
    )
    p.add_argument(
        "--opendax-addr",
        default=None,
        help="Licensing base URL (default: OPENDAX_ADDR env)",
    )
    return p.parse_args(argv)


def main(argv: List[str]) -> int:
    load_dotenv()
    args = _parse_args(argv)

    app_name = args.app_name or os.getenv("APP_NAME") or DEFAULT_APP_NAME
    opendax_addr = args.opendax_addr or os.getenv("OPENDAX_ADDR")
    if not opendax_addr:
        print("ERROR: OPENDAX_ADDR not set (check your .env)", file=sys.stderr)
        return 2

    try:
        store = build_secret_store()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    renewer = LicenseRenewer(app_name, store, build_client(opendax_addr))
    try:
        resp = renewer.renew()
    except LicenseRenewalError as e:
        print(f"ERROR: renewal failed [{e.kind}]: {e}", file=sys.stderr)
        return 1

    print(f"License for {app_name} renewed (expire={resp.expire})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
