#!/usr/bin/env python3
"""
CLI for the folder intake service.

Usage:
    python -m src.cli serve --port 3000
    python -m src.cli watch ./resumes ./inbox
    python -m src.cli sync ./resumes
    python -m src.cli validate ./resumes/a.pdf
"""

import argparse
import logging
import signal
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from src.intake import IntakeConfig, IntakeProcess, CallbackObserver, APIConfig
from src.intake.validators import create_default_registry

# Load .env from project root
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cli")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = False
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit = True


def _config_from_args(args) -> IntakeConfig:
    config = IntakeConfig.from_env()
    if getattr(args, "native", False):
        config.use_polling = False
    if getattr(args, "stability_ms", None) is not None:
        config.stability_threshold_ms = args.stability_ms
    return config


def cmd_serve(args):
    """Run the HTTP/WebSocket API."""
    import uvicorn
    from src.intake.api_server import create_app

    api = APIConfig.from_env()
    host = args.host or api.host
    port = args.port or api.port

    app = create_app(config=_config_from_args(args))
    logger.info(f"Listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


def cmd_watch(args):
    """Watch folders in the foreground, printing observer messages."""
    config = _config_from_args(args)
    shutdown = GracefulShutdown()

    with IntakeProcess(config=config) as process:
        process.broadcaster.add(CallbackObserver(print))

        for folder in args.folders:
            result = process.sync_folder(folder)
            if not result.ok:
                logger.error(result.message)
                sys.exit(1)

        logger.info("Press Ctrl+C to stop")
        while not shutdown.should_exit:
            time.sleep(0.5)

        logger.info(f"Queue length at exit: {process.queue.size()}")
        logger.info(f"Quarantined files: {len(process.results)}")

    logger.info("Watcher stopped")


def _api_base(args) -> str:
    return f"http://{args.api_host}:{args.api_port}"


def cmd_sync(args):
    """Ask a running server to watch a folder."""
    import httpx

    folder = str(Path(args.folder).resolve()) if args.absolute else args.folder
    try:
        with httpx.Client(timeout=30.0) as client:
            resp = client.post(f"{_api_base(args)}/api/sync", json={"folderPath": folder})
    except httpx.HTTPError as exc:
        logger.error(f"Failed to reach intake API at {_api_base(args)}: {exc}")
        sys.exit(1)

    message = resp.json().get("message", resp.text)
    if resp.status_code != 200:
        logger.error(message)
        sys.exit(1)
    print(message)


def cmd_unwatch(args):
    """Ask a running server to stop watching a folder."""
    import httpx

    try:
        with httpx.Client(timeout=30.0) as client:
            resp = client.delete(f"{_api_base(args)}/api/sync", params={"folderPath": args.folder})
    except httpx.HTTPError as exc:
        logger.error(f"Failed to reach intake API at {_api_base(args)}: {exc}")
        sys.exit(1)

    if resp.status_code != 200 or not resp.json().get("removed"):
        logger.error(f"Folder was not being watched: {args.folder}")
        sys.exit(1)
    print(f"Stopped watching folder: {args.folder}")


def cmd_validate(args):
    """Validate files without moving them."""
    config = IntakeConfig.from_env()
    registry = create_default_registry(
        max_file_size=config.max_file_size,
        docx_required_entries=config.docx_required_entries,
    )

    failures = 0
    for name in args.files:
        path = Path(name)
        if not config.is_allowed(path):
            print(f"SKIP     {path} (unsupported extension)")
            continue
        outcome = registry.validate_file(path)
        if outcome.is_accepted:
            print(f"OK       {path}")
        else:
            failures += 1
            print(f"INVALID  {path}: {outcome.reason}")

    if failures:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="CLI for the folder intake service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API server (POST /api/sync, WebSocket /ws)
  python -m src.cli serve --port 3000

  # Watch folders in the foreground
  python -m src.cli watch ./resumes

  # Ask a running server to watch a folder
  python -m src.cli sync ./resumes

  # Check files without quarantining them
  python -m src.cli validate ./resumes/a.pdf ./resumes/b.docx
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the intake API server")
    serve_parser.add_argument("--host", default=None, help="Bind host (default: INTAKE_HOST or 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: INTAKE_PORT or 3000)")
    serve_parser.add_argument("--native", action="store_true", help="Use native OS events instead of polling")
    serve_parser.add_argument("--stability-ms", type=int, default=None, help="Write-stability threshold in ms")
    serve_parser.set_defaults(func=cmd_serve)

    watch_parser = subparsers.add_parser("watch", help="Watch folders in the foreground")
    watch_parser.add_argument("folders", nargs="+", help="Folders to watch")
    watch_parser.add_argument("--native", action="store_true", help="Use native OS events instead of polling")
    watch_parser.add_argument("--stability-ms", type=int, default=None, help="Write-stability threshold in ms")
    watch_parser.set_defaults(func=cmd_watch)

    sync_parser = subparsers.add_parser("sync", help="Ask a running server to watch a folder")
    sync_parser.add_argument("folder", help="Folder to watch")
    sync_parser.add_argument("--absolute", action="store_true", help="Send the resolved absolute path")
    sync_parser.add_argument("--api-host", default="localhost", help="Intake API host (default: localhost)")
    sync_parser.add_argument("--api-port", type=int, default=3000, help="Intake API port (default: 3000)")
    sync_parser.set_defaults(func=cmd_sync)

    unwatch_parser = subparsers.add_parser("unwatch", help="Ask a running server to stop watching a folder")
    unwatch_parser.add_argument("folder", help="Folder to stop watching")
    unwatch_parser.add_argument("--api-host", default="localhost", help="Intake API host (default: localhost)")
    unwatch_parser.add_argument("--api-port", type=int, default=3000, help="Intake API port (default: 3000)")
    unwatch_parser.set_defaults(func=cmd_unwatch)

    validate_parser = subparsers.add_parser("validate", help="Validate files without moving them")
    validate_parser.add_argument("files", nargs="+", help="Files to check")
    validate_parser.set_defaults(func=cmd_validate)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    args.func(args)


if __name__ == "__main__":
    main()
