"""Quizboard CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from quizboard import __version__
from quizboard.config import Settings, get_settings
from quizboard.leaderboard import (
    APSchedulerTimerBackend,
    ConsoleDisplay,
    FetchError,
    LeaderboardView,
    RankingQueryAdapter,
    RefreshScheduler,
    Scope,
    build_rows,
)
from quizboard.services.supabase import (
    SupabaseAPIError,
    SupabaseClient,
    SupabaseConfig,
    create_supabase_client,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Quizboard Configuration
# Provider credentials (SUPABASE_URL, SUPABASE_KEY) belong in .env, not here.

provider:
  rpc_function: get_leaderboard_by_course_week
  timeout_seconds: 10.0
  max_retries: 3

leaderboard:
  refresh_interval_seconds: 5.0
  default_limit: 1000
  default_course_id: null
  default_week: null
  viewer_email: null
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from quizboard.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _build_client(settings: Settings) -> SupabaseClient:
    return create_supabase_client(
        config=SupabaseConfig(
            url=settings.supabase_url,
            api_key=settings.supabase_key,
            leaderboard_function=settings.provider.rpc_function,
            timeout_seconds=settings.provider.timeout_seconds,
            max_retries=settings.provider.max_retries,
        )
    )


def _scope_from_args(args: argparse.Namespace, settings: Settings) -> Scope:
    course_id = args.course_id if args.course_id is not None else settings.leaderboard.default_course_id
    week = args.week if args.week is not None else settings.leaderboard.default_week
    return Scope(course_id=course_id or None, week=week or None)


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Add SUPABASE_URL and SUPABASE_KEY to .env")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m quizboard show' to fetch the leaderboard once")
        print("4. Run 'python -m quizboard watch' for the live view\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Quizboard Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Provider:")
        print(f"  RPC Function: {settings.provider.rpc_function}")
        print(f"  Timeout: {settings.provider.timeout_seconds}s")
        print(f"  Max Retries: {settings.provider.max_retries}\n")

        print("Leaderboard:")
        print(f"  Refresh Interval: {settings.leaderboard.refresh_interval_seconds}s")
        print(f"  Default Limit: {settings.leaderboard.default_limit:,}")
        print(f"  Default Course: {settings.leaderboard.default_course_id or '(all)'}")
        print(f"  Default Week: {settings.leaderboard.default_week or '(all)'}")
        print(f"  Viewer Email: {settings.leaderboard.viewer_email or '(none)'}\n")

        print("Credentials:")
        print(f"  Supabase URL: {'✓ Set' if settings.supabase_url else '✗ Not set'}")
        print(f"  Supabase Key: {'✓ Set' if settings.supabase_key else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


async def _show(settings: Settings, scope: Scope, limit: int | None, viewer: str | None) -> None:
    async with _build_client(settings) as client:
        adapter = RankingQueryAdapter(client, default_limit=settings.leaderboard.default_limit)
        entries = await adapter.fetch(scope.course_id, scope.week, limit)
    ConsoleDisplay().render(
        LeaderboardView(scope=scope, rows=build_rows(entries, viewer))
    )


def cmd_show(args: argparse.Namespace) -> int:
    """Fetch and print the leaderboard once."""
    _init_logfire()

    try:
        settings = get_settings()
        scope = _scope_from_args(args, settings)
        viewer = args.viewer or settings.leaderboard.viewer_email
        asyncio.run(_show(settings, scope, args.limit, viewer))
        return 0

    except (FetchError, SupabaseAPIError) as e:
        logger.error(f"Leaderboard fetch failed: {e}")
        print(f"\n❌ Leaderboard fetch failed: {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Show failed: {e}", exc_info=True)
        print(f"\n❌ Show failed: {e}\n")
        return 1


async def _watch(
    settings: Settings,
    scope: Scope,
    limit: int | None,
    viewer: str | None,
    duration: float | None,
) -> None:
    timers = APSchedulerTimerBackend()
    async with _build_client(settings) as client:
        adapter = RankingQueryAdapter(client, default_limit=settings.leaderboard.default_limit)
        scheduler = RefreshScheduler(
            adapter,
            ConsoleDisplay(),
            timers,
            viewer_email=viewer,
            refresh_interval_seconds=settings.leaderboard.refresh_interval_seconds,
            limit=limit,
        )
        try:
            async with scheduler:
                scheduler.activate(scope)
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
        finally:
            timers.shutdown()


def cmd_watch(args: argparse.Namespace) -> int:
    """Keep the leaderboard live in the terminal."""
    _init_logfire()

    try:
        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()
        scope = _scope_from_args(args, settings)
        viewer = args.viewer or settings.leaderboard.viewer_email

        print(f"\n=== Quizboard Live ({scope.label}) ===\n")
        print(f"Refreshing every {settings.leaderboard.refresh_interval_seconds}s. Press Ctrl+C to stop\n")

        asyncio.run(_watch(settings, scope, args.limit, viewer, args.duration))
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Watch failed: {e}", exc_info=True)
        print(f"\n❌ Watch failed: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the leaderboard API server."""
    _init_logfire()

    try:
        import uvicorn

        from quizboard.api.server import create_app

        uvicorn.run(create_app(get_settings()), host=args.host, port=args.port)
        return 0

    except Exception as e:
        logger.error(f"Server failed: {e}", exc_info=True)
        print(f"\n❌ Server failed: {e}\n")
        return 1


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--course-id", default=None, help="Course to rank (default: all)")
    parser.add_argument("--week", default=None, help="Week to rank (default: all)")
    parser.add_argument("--limit", type=int, default=None, help="Maximum rows to fetch")
    parser.add_argument("--viewer", default=None, help="Email of the viewing user")


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Quizboard: live ranked leaderboard for quiz performance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Quizboard {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_show = subparsers.add_parser(
        "show",
        help="Fetch and print the leaderboard once",
    )
    _add_scope_arguments(parser_show)
    parser_show.set_defaults(func=cmd_show)

    parser_watch = subparsers.add_parser(
        "watch",
        help="Keep the leaderboard live in the terminal",
    )
    _add_scope_arguments(parser_watch)
    parser_watch.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    parser_watch.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_watch.set_defaults(func=cmd_watch)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Run the leaderboard API server",
    )
    parser_serve.add_argument("--host", default="127.0.0.1")
    parser_serve.add_argument("--port", type=int, default=8000)
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
