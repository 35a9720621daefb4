from __future__ import annotations

import argparse
import getpass
import json
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .auth_store import AuthStoreError, FileAuthStore
from .config import AppConfig, load_config
from .errors import PortalError
from .logging_config import configure_logging
from .models import Activity, ActivityRequest, Auth, Overview
from .portal.client import PortalClient
from .util.dates import load_zone
from .util.debug_bundle import create_debug_bundle
from .util.money import cents_to_money_str


logger = logging.getLogger("opal_portal")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="opal_portal")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )
    p.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml, optional)")

    sub = p.add_subparsers(dest="cmd", required=True)

    overview = sub.add_parser("overview", help="Show the balance of every active card")
    overview.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    activity = sub.add_parser("activity", help="Show recent transactions for one card")
    activity.add_argument(
        "--card-index",
        type=int,
        default=0,
        help="Card position as listed by `overview` (default: 0)",
    )
    activity.add_argument("--page", type=int, default=0, help="History page, 0 = most recent (default: 0)")
    activity.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    sub.add_parser(
        "save-credentials",
        help="Write the portal username/password to the auth file (from OPAL_USERNAME/OPAL_PASSWORD, else prompts)",
    )

    bundle = sub.add_parser("debug-bundle", help="Zip saved page captures + the log file for a bug report")
    bundle.add_argument("--out-dir", default="data", help="Where to write the zip (default: data)")

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    cfg = load_config(args.config)
    configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path)

    if args.cmd == "save-credentials":
        try:
            _save_credentials(cfg)
        except AuthStoreError as e:
            logger.error("%s", e)
            return 1
        return 0

    if args.cmd == "debug-bundle":
        out = create_debug_bundle(
            debug_dir=cfg.portal.debug_dir,
            log_file=cfg.logging.file_path,
            out_dir=args.out_dir,
            label="opal",
            exclude_paths=[cfg.auth.file_path],
        )
        print(f"Debug bundle written: {out}")
        return 0

    if args.cmd in ("overview", "activity"):
        t0 = time.time()
        try:
            with _build_client(cfg) as client:
                try:
                    if args.cmd == "overview":
                        overview = client.fetch_overview()
                        _print_overview(overview, as_json=args.json)
                    else:
                        req = ActivityRequest(card_index=args.card_index, page=args.page)
                        activity = client.fetch_activity(req)
                        _print_activity(activity, as_json=args.json)
                except PortalError:
                    # Keep any cookies from a fresh login even if parsing failed afterwards.
                    _save_session_after_failure(client)
                    raise
                client.save_session()
        except AuthStoreError as e:
            logger.error("%s", e)
            return 1
        except PortalError as e:
            logger.error("%s failed: %s", args.cmd, e)
            try:
                out = create_debug_bundle(
                    debug_dir=cfg.portal.debug_dir,
                    log_file=cfg.logging.file_path,
                    label="opal",
                    exclude_paths=[cfg.auth.file_path],
                )
                logger.error("Wrote debug bundle: %s", out)
            except OSError:
                logger.debug("Failed to create debug bundle.", exc_info=True)
            return 1
        logger.info("%s finished (seconds=%.2f)", args.cmd, time.time() - t0)
        return 0

    raise AssertionError("Unhandled command")


def _build_client(cfg: AppConfig) -> PortalClient:
    return PortalClient(
        FileAuthStore(cfg.auth.file_path),
        base_url=cfg.portal.base_url,
        zone=load_zone(cfg.portal.timezone),
        timeout_seconds=cfg.portal.timeout_seconds,
        user_agent=cfg.portal.user_agent,
        debug_dir=cfg.portal.debug_dir,
    )


def _save_session_after_failure(client: PortalClient) -> None:
    # The portal error is what the user needs to see; a save failure here is secondary.
    try:
        client.save_session()
    except AuthStoreError as e:
        logger.error("Could not save session cookies: %s", e)


def _save_credentials(cfg: AppConfig) -> None:
    store = FileAuthStore(cfg.auth.file_path)
    cookies = []
    if store.path.exists():
        # Keep the current session; a changed password will simply force a fresh login.
        cookies = store.load().cookies

    username = os.getenv("OPAL_USERNAME", "").strip() or input("Opal username: ").strip()
    password = os.getenv("OPAL_PASSWORD", "") or getpass.getpass("Opal password: ")
    if not username or not password:
        raise AuthStoreError("username and password are both required")

    store.save(Auth(username=username, password=password, cookies=cookies))
    logger.info("Saved credentials to %s", store.path)


def _print_overview(overview: Overview, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(overview.model_dump(mode="json"), indent=2))
        return
    if not overview.cards:
        print("No active cards.")
        return
    for card in overview.cards:
        print(f"{card.name}: {cents_to_money_str(card.balance_cents)}")


def _print_activity(activity: Activity, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(activity.model_dump(mode="json"), indent=2))
        return
    print(f"Card: {activity.card_name}")
    prev_week: Optional[tuple[int, int]] = None
    for t in activity.transactions:
        week = t.when.isocalendar()[:2]
        if prev_week is not None and week != prev_week:
            print("-" * 50)
        prev_week = week
        journey = f"J{t.journey_number:02d}" if t.journey_number else "   "
        print(
            f"{t.when:%Y-%m-%d %H:%M}  {journey} ({t.mode:>5}) {t.details} "
            f"[{cents_to_money_str(t.amount_cents)}]"
        )
