"""Command line entry point for the Aria data collector.

Usage:
  aria auth                  # run the local OAuth server and authorize once
  aria fetch --days 30       # print profile, weight and body-fat logs
  aria status | refresh | logout
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from loguru import logger

from aria.biometrics.fitbit_client import FitbitClient
from aria.biometrics.token_store import token_store_from_settings
from aria.core.config import Settings, get_settings, load_env
from aria.core.errors import ApiResult, ErrorKind
from aria.core.logging_config import setup_logging

KG_TO_LBS = 2.20462
DEFAULT_DAYS = 30


def date_range(days: int, today: Optional[date] = None) -> tuple[str, str]:
    """Return ``(start, end)`` as YYYY-MM-DD for the last ``days`` days."""
    end = today or date.today()
    start = end - timedelta(days=days)
    return start.isoformat(), end.isoformat()


def format_weight(kg: float, imperial: bool) -> str:
    if imperial:
        return f"{kg * KG_TO_LBS:.1f} lbs"
    return f"{kg} kg"


def _report_error(result: ApiResult[Any]) -> int:
    err = result.error
    if result.kind is ErrorKind.AUTH:
        print(f"\nAuthentication Error: {err}")
        print('Please run "aria auth" to re-authorize.\n')
    else:
        print(f"\nAPI Error: {err}")
        print(f"Status Code: {getattr(err, 'status_code', '?')}")
    return 1


def _print_weight_logs(entries: List[Dict[str, Any]], imperial: bool) -> None:
    if not entries:
        print("\nNo weight logs found for this period.")
        return
    print(f"\nWeight Logs ({len(entries)} entries):")
    for entry in entries:
        print(f"  {entry.get('date')}: {format_weight(entry.get('weight', 0), imperial)}")


def _print_fat_logs(entries: List[Dict[str, Any]]) -> None:
    if not entries:
        print("\nNo body fat logs found for this period.")
        return
    print(f"\nBody Fat Logs ({len(entries)} entries):")
    for entry in entries:
        print(f"  {entry.get('date')}: {entry.get('fat')}%")


async def fetch(client: FitbitClient, days: int = DEFAULT_DAYS, goals: bool = False) -> int:
    print("Aria Data Collector\n")
    if client.token_store.load() is None:
        print("No tokens found.")
        print('Please run "aria auth" to authorize with Fitbit first.\n')
        return 1

    print("Fetching user profile...")
    profile = await client.call(client.get_profile)
    if not profile.ok:
        return _report_error(profile)
    user = (profile.value or {}).get("user", {})
    print(f"\nHello, {user.get('displayName')}!")
    print(f"Member since: {user.get('memberSince')}\n")

    start, end = date_range(days)
    imperial = user.get("weightUnit") == "en_US"

    print(f"Fetching weight logs ({start} to {end})...")
    weight = await client.call(client.get_weight_logs, start, end)
    if not weight.ok:
        return _report_error(weight)
    _print_weight_logs((weight.value or {}).get("weight") or [], imperial)

    print(f"\nFetching body fat logs ({start} to {end})...")
    fat = await client.call(client.get_body_fat_logs, start, end)
    if not fat.ok:
        return _report_error(fat)
    _print_fat_logs((fat.value or {}).get("fat") or [])

    if goals:
        weight_goal = await client.call(client.get_weight_goal)
        if not weight_goal.ok:
            return _report_error(weight_goal)
        goal = (weight_goal.value or {}).get("goal") or {}
        if goal.get("weight") is not None:
            print(f"\nWeight goal: {format_weight(goal['weight'], imperial)}")
        fat_goal = await client.call(client.get_body_fat_goal)
        if not fat_goal.ok:
            return _report_error(fat_goal)
        goal = (fat_goal.value or {}).get("goal") or {}
        if goal.get("fat") is not None:
            print(f"Body fat goal: {goal['fat']}%")

    print("\nDone!")
    return 0


async def refresh(client: FitbitClient) -> int:
    result = await client.call(client.refresh)
    if not result.ok:
        return _report_error(result)
    status = client.token_store.status()
    print(f"Access token refreshed, expires at {status.get('expires_at_utc')}")
    return 0


def status(settings: Settings) -> int:
    info = token_store_from_settings(settings).status()
    if not info["connected"]:
        print('Not connected. Run "aria auth" to authorize.')
        return 1
    for key, value in info.items():
        print(f"{key}: {value}")
    return 0


def logout(settings: Settings) -> int:
    token_store_from_settings(settings).clear()
    print("Stored tokens removed.")
    return 0


def serve_auth(settings: Settings, host: str = "127.0.0.1", port: Optional[int] = None) -> int:
    """Run the local OAuth server until interrupted."""
    import uvicorn

    missing = settings.missing_credentials()
    if missing:
        logger.error("{} must be set in environment variables", " and ".join(missing))
        return 1
    port = port or settings.port
    if str(port) not in settings.fitbit_redirect_uri:
        logger.warning("Redirect URI {} does not point at port {}", settings.fitbit_redirect_uri, port)
    print(f"\nFitbit OAuth Server running on http://localhost:{port}")
    print("Open this URL in your browser to start the authorization flow.\n")
    uvicorn.run("aria.api.main:app", host=host, port=port)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="aria", description="Fitbit weight and body-fat collector")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command")

    p_auth = sub.add_parser("auth", help="Run the local OAuth server")
    p_auth.add_argument("--host", default="127.0.0.1")
    p_auth.add_argument("--port", type=int, default=None)

    p_fetch = sub.add_parser("fetch", help="Print profile, weight and body-fat logs")
    p_fetch.add_argument("--days", type=int, default=DEFAULT_DAYS, help="Days of history to fetch")
    p_fetch.add_argument("--goals", action="store_true", help="Also print weight and body-fat goals")

    sub.add_parser("status", help="Show stored token status")
    sub.add_parser("refresh", help="Force a token refresh")
    sub.add_parser("logout", help="Delete stored tokens")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "fetch"
        args.days = DEFAULT_DAYS
        args.goals = False
    return args


def _dispatch(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "auth":
        return serve_auth(settings, host=args.host, port=args.port)
    if args.command == "status":
        return status(settings)
    if args.command == "logout":
        return logout(settings)
    client = FitbitClient(settings=settings)
    if args.command == "refresh":
        return asyncio.run(refresh(client))
    return asyncio.run(fetch(client, days=args.days, goals=args.goals))


def run(args: argparse.Namespace, settings: Settings) -> int:
    try:
        return _dispatch(args, settings)
    except Exception as exc:
        logger.exception("Unexpected error running {}", args.command)
        print(f"\nUnexpected error: {exc}")
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    load_env()
    s = get_settings()
    setup_logging(args.log_level or s.log_level, s.log_file)
    sys.exit(run(args, s))


if __name__ == "__main__":
    main()
