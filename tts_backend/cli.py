"""
Operator command-line interface.

Usage Examples:
    # Create tables (idempotent)
    python -m tts_backend init-db

    # Round-trip check against the database
    python -m tts_backend check-db --json

    # Monthly usage reset, run by an external scheduler
    python -m tts_backend reset-usage

    # Dashboard read model for one user
    python -m tts_backend dashboard user_123

Environment Variables:
    PG_HOST, PG_PORT, PG_DATABASE, PG_USER, PG_PASSWORD: Connection settings
    PG_SSL, PG_TRUST_SERVER_CERTIFICATE: TLS settings
    LOG_LEVEL: Logging level (default INFO)
"""

import argparse
import asyncio
import json
from datetime import datetime
from typing import List, Optional

from tts_backend.config import Config, load_environment, log_configuration_summary
from tts_backend.database import DashboardRepository, DatabasePool
from tts_backend.lifecycle import shutdown, startup
from tts_backend.services import UsageQuotaService
from tts_backend.shared import ConfigurationError, setup_logging


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tts_backend", description="TTS backend database tools")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--json", action="store_true", help="Print JSON output")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create the users and audio_files tables")
    sub.add_parser("check-db", help="Run SELECT 1 against the database")

    reset = sub.add_parser("reset-usage", help="Reset monthly usage for users whose period elapsed")
    reset.add_argument("--now", type=datetime.fromisoformat,
                       help="Reference time (ISO 8601), defaults to current UTC time")

    dashboard = sub.add_parser("dashboard", help="Show the dashboard read model for a user")
    dashboard.add_argument("user_id")

    return parser.parse_args(argv)


def _emit(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False, default=str))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


async def _run(args: argparse.Namespace, config: Config) -> int:
    db = DatabasePool(config.database)
    try:
        if args.command == "init-db":
            await startup(config, db)
            _emit({"ok": True, "command": "init-db"}, args.json)
            return 0

        if args.command == "check-db":
            check = await db.check_connection()
            _emit(check.to_dict(), args.json)
            return 0 if check.success else 1

        if args.command == "reset-usage":
            count = await UsageQuotaService(db, config.retry).reset_monthly_usage(now=args.now)
            _emit({"ok": True, "users_reset": count}, args.json)
            return 0

        if args.command == "dashboard":
            dashboard = await DashboardRepository(db, config.retry).get_user_dashboard(args.user_id)
            _emit(dashboard.to_dict(), args.json)
            return 0

        return 2
    finally:
        await shutdown(db)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = _parse_args(argv)
    load_environment(args.env_file)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        setup_logging()
        print(f"Configuration error: {e}")
        return 2

    setup_logging(config.log_level)
    log_configuration_summary(config)
    return asyncio.run(_run(args, config))


if __name__ == "__main__":
    raise SystemExit(main())
