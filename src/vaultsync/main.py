"""Main application entry point."""

import argparse
import asyncio
import contextlib
import signal
import sys
import webbrowser
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from aiohttp import web

from .config.settings import AppSettings, get_settings
from .config.store import ConfigStore
from .core.connector import VaultSyncConnector
from .events.bus import EventBus
from .exceptions import VaultSyncError
from .scheduler.job_scheduler import SyncScheduler
from .utils.logging import setup_logging, get_logger
from .vault.filesystem import FilesystemVault
from .vault.watcher import VaultWatcher


class VaultSyncApp:
    """Long-running vaultsync application.

    Startup runs one reconciliation pass, then keeps the vault watcher, the
    optional periodic scheduler and the optional status server alive.
    """

    def __init__(self, settings: Optional[AppSettings] = None, connector: Optional[VaultSyncConnector] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger("VaultSyncApp")
        self.running = False
        self.started_at: Optional[datetime] = None

        self.connector = connector or build_connector(self.settings)
        self.watcher: Optional[VaultWatcher] = None
        self.scheduler: Optional[SyncScheduler] = None
        self.web_runner: Optional[web.AppRunner] = None
        self._initial_sync: Optional[asyncio.Task] = None

    async def startup(self):
        """Application startup."""
        self.logger.info(
            "Starting vaultsync",
            version=self.settings.version,
            environment=self.settings.environment
        )

        self.connector.register_handlers()

        if self.connector.credential_store.is_authenticated:
            self.connector.notifier.info("App is already authenticated to Google Drive")

        # Initial pass runs in the background so events are handled meanwhile
        self._initial_sync = asyncio.create_task(self.connector.sync())

        vault = self.connector.vault
        if self.settings.sync.watch_vault and isinstance(vault, FilesystemVault):
            self.watcher = VaultWatcher(vault, self.connector.bus)
            self.watcher.start()

        if self.settings.sync.sync_interval_minutes > 0:
            self.scheduler = SyncScheduler(self.connector, self.settings.sync.sync_interval_minutes)
            self.scheduler.start()

        if self.settings.status_port:
            await self._setup_web_server(self.settings.status_port)

        self.running = True
        self.started_at = datetime.now(timezone.utc)
        self.logger.info("vaultsync started successfully")

    async def shutdown(self):
        """Application shutdown."""
        self.logger.info("Shutting down vaultsync")
        self.running = False

        if self.scheduler:
            self.scheduler.stop()

        if self.watcher:
            self.watcher.stop()

        if self._initial_sync:
            if not self._initial_sync.done():
                self._initial_sync.cancel()
            try:
                with contextlib.suppress(asyncio.CancelledError):
                    await self._initial_sync
            except Exception as e:
                self.logger.error("Initial sync failed", error=str(e))
            self._initial_sync = None

        await self._stop_web_server()
        self.connector.unregister_handlers()

        self.logger.info("vaultsync stopped")

    async def run(self):
        """Run until a shutdown signal arrives."""
        await self.startup()

        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            await self.shutdown()

    async def _setup_web_server(self, port: int):
        """Set up web server for health checks and status."""
        app = web.Application()
        app.router.add_get('/health', self._health_handler)
        app.router.add_get('/status', self._status_handler)

        self.web_runner = web.AppRunner(app)
        await self.web_runner.setup()

        site = web.TCPSite(self.web_runner, '127.0.0.1', port)
        await site.start()

        self.logger.info(f"Status server started on http://127.0.0.1:{port}")

    async def _stop_web_server(self):
        if self.web_runner:
            await self.web_runner.cleanup()
            self.web_runner = None

    async def _health_handler(self, request):
        uptime = 0.0
        if self.started_at:
            uptime = (datetime.now(timezone.utc) - self.started_at).total_seconds()

        health_data = {
            "status": "healthy" if self.running else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.settings.version,
            "uptime_seconds": uptime
        }
        return web.json_response(health_data, status=200 if self.running else 503)

    async def _status_handler(self, request):
        status_data = self.connector.get_status()
        status_data["scheduler"] = {
            "running": bool(self.scheduler and self.scheduler.running),
            "next_run": self.scheduler.next_run_time() if self.scheduler else None,
        }
        status_data["watcher"] = bool(self.watcher and self.watcher.running)
        return web.json_response(status_data)


def build_connector(settings: AppSettings, vault_root: Optional[str] = None) -> VaultSyncConnector:
    """Build a connector for a filesystem vault from settings."""
    config_store = ConfigStore(settings.sync.config_path)
    config_store.load()

    vault = FilesystemVault(vault_root or settings.sync.vault_root)
    return VaultSyncConnector(
        config_store=config_store,
        vault=vault,
        bus=EventBus(),
        settings=settings,
        notice_callback=_print_notice,
    )


def _print_notice(notice) -> None:
    print(notice.message, file=sys.stderr)


def setup_signal_handlers(app: VaultSyncApp):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info(f"Received signal {signum}")
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def run_app(settings: AppSettings):
    app = VaultSyncApp(settings)
    setup_signal_handlers(app)
    await app.run()


async def authenticate(connector: VaultSyncConnector, open_browser: bool = True) -> None:
    """Interactive authorization: open the consent page and read the code."""
    auth_url = connector.begin_authorization()

    print("Open the following URL and authorize access to Google Drive:")
    print(f"\n{auth_url}\n")
    if open_browser:
        webbrowser.open(auth_url)

    loop = asyncio.get_running_loop()
    code = await loop.run_in_executor(None, input, "Enter your Google authorization code: ")
    await connector.complete_authorization(code)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vaultsync", description="Sync a local vault folder to Google Drive")
    parser.add_argument("--config", help="Path to the sync configuration file")
    parser.add_argument("--vault", help="Vault root directory")
    parser.add_argument("--log-level", help="Logging level")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Sync once, then watch the vault for deletions (default)")
    subparsers.add_parser("sync", help="Run a single reconciliation pass")

    auth_parser = subparsers.add_parser("auth", help="Authorize access to Google Drive")
    auth_parser.add_argument("--no-browser", action="store_true", help="Only print the consent URL")

    upload_parser = subparsers.add_parser("upload", help="Upload files as if dropped into the vault")
    upload_parser.add_argument("paths", nargs="+")

    delete_parser = subparsers.add_parser("delete", help="Delete the remote file with this name")
    delete_parser.add_argument("name")

    config_parser = subparsers.add_parser("config", help="Show or change the sync configuration")
    config_parser.add_argument("--client-id")
    config_parser.add_argument("--client-secret")
    config_parser.add_argument("--redirect-uri")
    config_parser.add_argument("--folder-id")
    config_parser.add_argument("--file-directory")

    return parser.parse_args(argv)


async def run_command(args: argparse.Namespace, settings: AppSettings) -> int:
    command = args.command or "run"

    if command == "run":
        await run_app(settings)
        return 0

    connector = build_connector(settings, vault_root=args.vault)

    if command == "sync":
        result = await connector.sync()
        return 0 if result.success and not result.failed else 1

    if command == "auth":
        await authenticate(connector, open_browser=not args.no_browser)
        return 0

    if command == "upload":
        results = await connector.upload_paths(args.paths)
        return 0 if all(r.success for r in results) else 1

    if command == "delete":
        result = await connector.delete(args.name)
        return 0 if result.success else 1

    if command == "config":
        changes = {
            field: value for field, value in {
                "client_id": args.client_id,
                "client_secret": args.client_secret,
                "redirect_uri": args.redirect_uri,
                "folder_id": args.folder_id,
                "file_directory": args.file_directory,
            }.items() if value is not None
        }
        config = connector.config_store.update(**changes) if changes else connector.config_store.config
        for key, value in config.to_storage_dict().items():
            if key in ("clientSecret", "accessToken", "refreshToken") and value:
                value = "********"
            print(f"{key}: {value}")
        return 0

    return 2


def cli(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    args = parse_args(argv)

    settings = get_settings()
    if args.config:
        settings.sync.config_path = args.config
    if args.vault:
        settings.sync.vault_root = args.vault

    setup_logging(log_level=args.log_level)
    Path(settings.sync.config_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        exit_code = asyncio.run(run_command(args, settings))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        exit_code = 0
    except VaultSyncError as e:
        print(f"vaultsync failed: {e}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
