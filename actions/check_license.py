#!/usr/bin/env python3
"""Show the stored license and whether it is due for renewal.

Read-only: nothing is requested from the licensing endpoint and nothing is
written to the secret store.

Recommended invocation:
- python -m actions.check_license

Env vars (loaded from `.env` if present):
- VAULT_ADDR, VAULT_TOKEN (required)
- KAIGARA_DEPLOYMENT_ID (optional, default: opendax_uat)
- APP_NAME (optional, default: finex)
- LICENSE_RENEWAL_THRESHOLD (optional, default: 0.75)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

from dotenv import load_dotenv

from core.errors import LicenseRenewalError
from core.license_daemon import DEFAULT_APP_NAME, build_secret_store
from core.license_renewal import fetch_string_secret
from core.license_token import LicenseWindow, parse_license
from core.renewal_policy import (
    DEFAULT_THRESHOLD_FRACTION,
    should_renew,
    validate_threshold,
)
from core.secret_store import license_ref


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Inspect the stored license")
    p.add_argument(
        "--app-name",
        default=None,
        help=f"License component (default: APP_NAME env or {DEFAULT_APP_NAME})",
    )
    p.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Renewal threshold fraction (default: 0.75)",
    )
    p.add_argument("--json", action="store_true", help="Print a JSON document")
    return p.parse_args(argv)


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def describe(window: LicenseWindow, now: float, threshold: float) -> Dict[str, Any]:
    return {
        "created_at": window.created_at,
        "expire_at": window.expire_at,
        "created_at_iso": _iso(window.created_at),
        "expire_at_iso": _iso(window.expire_at),
        "elapsed_fraction": round(window.elapsed_fraction(now), 4),
        "threshold": threshold,
        "renewal_due": should_renew(now, window.created_at, window.expire_at, threshold),
        "expired": now >= window.expire_at,
    }


def main(argv: List[str]) -> int:
    load_dotenv()
    args = _parse_args(argv)

    app_name = args.app_name or os.getenv("APP_NAME") or DEFAULT_APP_NAME
    try:
        threshold = validate_threshold(
            args.threshold
            if args.threshold is not None
            else os.getenv("LICENSE_RENEWAL_THRESHOLD", str(DEFAULT_THRESHOLD_FRACTION))
        )
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        store = build_secret_store()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        lic = fetch_string_secret(store, license_ref(app_name))
        window = parse_license(lic, app_name)
    except LicenseRenewalError as e:
        print(f"ERROR: [{e.kind}] {e}", file=sys.stderr)
        return 1

    try:
        info = describe(window, time.time(), threshold)
    except (OverflowError, OSError, ValueError) as e:
        print(f"ERROR: license timestamps are out of range: {e}", file=sys.stderr)
        return 1
    info["app_name"] = app_name

    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0

    print(f"License for {app_name}:")
    print(f"- created: {info['created_at_iso']}")
    print(f"- expires: {info['expire_at_iso']}")
    print(f"- elapsed: {info['elapsed_fraction'] * 100:.1f}% (threshold {threshold * 100:.0f}%)")
    if info["expired"]:
        print("- status: EXPIRED")
    elif info["renewal_due"]:
        print("- status: renewal due")
    else:
        print("- status: ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
