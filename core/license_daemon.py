#!/usr/bin/env python3
"""
License Daemon - keeps the platform license in the secret store fresh.

On every tick the daemon reads the stored license, checks how much of its
validity window has elapsed, and once the renewal threshold is crossed asks
the licensing endpoint for a replacement and writes it back to the store.
Failures are logged and end the tick; the next tick starts from scratch.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from dotenv import load_dotenv

from core.errors import LicenseRenewalError
from core.license_renewal import LicenseRenewer
from core.license_token import LicenseWindow, parse_license
from core.opendax_client import LicenseResponse, OpendaxClient
from core.renewal_policy import (
    DEFAULT_THRESHOLD_FRACTION,
    should_renew,
    validate_threshold,
)
from core.secret_store import SecretStore
from core.vault_store import VaultSecretStore


logger = logging.getLogger("license-daemon")

DEFAULT_INTERVAL_S = 15 * 60
DEFAULT_APP_NAME = "finex"

TICK_RENEWED = "renewed"
TICK_SKIPPED = "skipped"
TICK_FAILED = "failed"


def configure_logging(log_file: Optional[str] = "license_daemon.log", level: str = "INFO") -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


@dataclass
class TickResult:
    """Outcome of one pipeline run."""

    status: str
    window: Optional[LicenseWindow] = None
    response: Optional[LicenseResponse] = None
    error: Optional[BaseException] = None
    dry_run: bool = False

    @property
    def error_kind(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "kind", type(self.error).__name__)


class LicenseDaemon:
    """Periodic license check-and-renew loop."""

    def __init__(
        self,
        app_name: str,
        store: SecretStore,
        client: OpendaxClient,
        interval: float = DEFAULT_INTERVAL_S,
        threshold: float = DEFAULT_THRESHOLD_FRACTION,
        once: bool = False,
        dry_run: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the daemon.

        Args:
            app_name: License component name and secret namespace
            store: Secret store holding license, platform id and signing key
            client: Licensing endpoint client
            interval: Seconds to sleep between ticks (default: 900)
            threshold: Fraction of lifetime after which to renew
            once: Run a single tick and return
            dry_run: Decide but never call the endpoint or write the store
            clock: Returns the current time in epoch seconds
        """
        self.app_name = app_name
        self.renewer = LicenseRenewer(app_name, store, client)
        self.interval = interval
        self.threshold = validate_threshold(threshold)
        self.once = once
        self.dry_run = dry_run
        self.clock = clock
        self._stop_event = threading.Event()
        logger.info("License daemon initialized for %s", app_name)

    @property
    def running(self) -> bool:
        return not self._stop_event.is_set()

    def check(self) -> TickResult:
        """Run inspector -> decider -> exchanger once, raising on failure."""

        lic = self.renewer.current_license()
        window = parse_license(lic, self.app_name)
        now = self.clock()

        if not should_renew(now, window.created_at, window.expire_at, self.threshold):
            logger.info(
                "License renewal was skipped (%.1f%% of lifetime elapsed, expires at %s)",
                window.elapsed_fraction(now) * 100,
                window.expire_at,
            )
            return TickResult(TICK_SKIPPED, window=window)

        if self.dry_run:
            logger.info("DRY_RUN - license renewal is due, exchange skipped")
            return TickResult(TICK_SKIPPED, window=window, dry_run=True)

        response = self.renewer.renew()
        logger.info("License was renewed")
        return TickResult(TICK_RENEWED, window=window, response=response)

    def run_tick(self, iteration: Optional[int] = None) -> TickResult:
        """Run a single tick. Never raises."""

        if iteration is not None:
            logger.info("License check %s", iteration)
        try:
            return self.check()
        except LicenseRenewalError as e:
            logger.warning("License check failed [%s]: %s", e.kind, e)
            return TickResult(TICK_FAILED, error=e)
        except Exception as e:
            logger.exception("Unexpected error during license check: %s", e)
            return TickResult(TICK_FAILED, error=e)

    def start(self) -> None:
        """Run ticks until `stop()` is called (or once, with `once=True`)."""
        logger.info("Starting license daemon...")

        if self.dry_run:
            logger.info("DRY_RUN enabled - licenses will not be renewed")

        self._stop_event.clear()
        iteration = 0

        try:
            while not self._stop_event.is_set():
                iteration += 1
                self.run_tick(iteration)

                if self.once:
                    logger.info("--once set; exiting after one check")
                    break

                logger.info("Sleeping for %s seconds...", self.interval)
                if self._stop_event.wait(self.interval):
                    break
        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down...")
        finally:
            self._stop_event.set()

    def stop(self) -> None:
        """Ask the loop to exit before the next tick."""
        logger.info("Stopping daemon...")
        self._stop_event.set()


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="License renewal daemon")
    parser.add_argument("--once", action="store_true", help="Run one check and exit")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Check the license but never request or store a new one",
    )
    parser.add_argument(
        "--app-name",
        default=None,
        help=f"License component / secret namespace (default: APP_NAME env or {DEFAULT_APP_NAME})",
    )
    parser.add_argument(
        "--opendax-addr",
        default=None,
        help="Licensing base URL (default: OPENDAX_ADDR env)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between checks (default: LICENSE_POLL_INTERVAL_S env or 900)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Fraction of license lifetime after which to renew (default: 0.75)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Log file path (default: LOG_FILE env or license_daemon.log; '' disables)",
    )
    return parser.parse_args(argv)


def build_secret_store() -> VaultSecretStore:
    """Create the Vault-backed store from VAULT_* environment variables."""

    vault_addr = os.getenv("VAULT_ADDR")
    vault_token = os.getenv("VAULT_TOKEN")
    if not vault_addr or not vault_token:
        raise ValueError("VAULT_ADDR and VAULT_TOKEN must be set in .env file")

    timeout_env = os.getenv("VAULT_TIMEOUT_S")

    return VaultSecretStore(
        vault_addr=vault_addr,
        vault_token=vault_token,
        deployment_id=os.getenv("KAIGARA_DEPLOYMENT_ID", "opendax_uat"),
        mount_point=os.getenv("VAULT_MOUNT_POINT", "secret"),
        timeout_s=float(timeout_env) if timeout_env else None,
    )


def build_client(opendax_addr: str) -> OpendaxClient:
    timeout_env = os.getenv("OPENDAX_TIMEOUT_S")
    timeout_s = float(timeout_env) if timeout_env else None
    return OpendaxClient(opendax_addr, timeout_s=timeout_s)


def build_daemon(args: argparse.Namespace) -> LicenseDaemon:
    """Assemble the daemon from parsed args and the environment.

    Raises:
        ValueError: required configuration is missing or invalid.
    """

    app_name = args.app_name or os.getenv("APP_NAME") or DEFAULT_APP_NAME
    opendax_addr = args.opendax_addr or os.getenv("OPENDAX_ADDR")
    if not opendax_addr:
        raise ValueError("OPENDAX_ADDR not set in .env file")

    interval = (
        args.interval
        if args.interval is not None
        else float(os.getenv("LICENSE_POLL_INTERVAL_S", str(DEFAULT_INTERVAL_S)))
    )
    if interval <= 0:
        raise ValueError(f"Polling interval must be positive, got {interval}")

    threshold = (
        args.threshold
        if args.threshold is not None
        else float(os.getenv("LICENSE_RENEWAL_THRESHOLD", str(DEFAULT_THRESHOLD_FRACTION)))
    )

    store = build_secret_store()
    client = build_client(opendax_addr)

    return LicenseDaemon(
        app_name,
        store,
        client,
        interval=interval,
        threshold=threshold,
        once=args.once,
        dry_run=args.dry_run,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the daemon."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    load_dotenv()

    log_file = args.log_file if args.log_file is not None else os.getenv("LOG_FILE", "license_daemon.log")
    configure_logging(log_file, os.getenv("LOG_LEVEL", "INFO"))

    try:
        daemon = build_daemon(args)
    except ValueError as e:
        logger.error("Failed to start daemon: %s", e)
        return 1

    def _handle_signal(signum, frame):
        logger.info("Received signal %s", signum)
        daemon.stop()

    signal.signal(signal.SIGTERM, _handle_signal)

    daemon.start()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
