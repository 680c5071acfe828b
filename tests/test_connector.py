"""Integration tests for the connector, watcher, scheduler and application wiring."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from watchdog.events import DirDeletedEvent
from watchdog.events import FileDeletedEvent as WatchdogFileDeletedEvent

from vaultsync.auth.credentials import AuthState
from vaultsync.config.settings import AppSettings, SyncSettings
from vaultsync.core.connector import VaultSyncConnector
from vaultsync.events.bus import DroppedFile, EventBus, EventKind, FileDeletedEvent, FilesDroppedEvent
from vaultsync.exceptions import AuthError, LocalIOError
from vaultsync.main import VaultSyncApp, parse_args
from vaultsync.scheduler.job_scheduler import SYNC_JOB_ID, SchedulerError, SyncScheduler
from vaultsync.vault.watcher import VaultDeletionHandler


@pytest.fixture
def settings():
    return AppSettings(sync=SyncSettings(watch_vault=False, max_concurrent_uploads=2))


@pytest.fixture
def connector(config_store, vault, fake_client, notifier, settings):
    return VaultSyncConnector(
        config_store=config_store,
        vault=vault,
        client=fake_client,
        bus=EventBus(),
        notifier=notifier,
        settings=settings,
    )


@pytest.mark.integration
class TestConnectorEvents:
    """Test events published on the bus reaching the sync handlers."""

    @pytest.mark.asyncio
    async def test_delete_event_removes_remote_file(self, connector, fake_client):
        fake_client.folders["folder_123"] = [("123", "notes.md")]
        connector.register_handlers()

        await connector.bus.publish(FileDeletedEvent(name="notes.md", path="synced/notes.md"))

        assert fake_client.deleted == ["123"]

    @pytest.mark.asyncio
    async def test_drop_and_paste_events_upload(self, connector, fake_client):
        connector.register_handlers()

        await connector.bus.publish(FilesDroppedEvent(files=[DroppedFile("a.png", b"a")]))
        await connector.bus.publish(FilesDroppedEvent(files=[DroppedFile("b.pdf", b"b")], kind=EventKind.PASTE))

        assert fake_client.uploaded == [
            ("folder_123", "a.png", "image/png", b"a"),
            ("folder_123", "b.pdf", "application/pdf", b"b"),
        ]

    def test_register_is_idempotent_and_reversible(self, connector):
        connector.register_handlers()
        connector.register_handlers()

        assert connector.bus.handler_count(EventKind.DELETE) == 1
        assert connector.bus.handler_count(EventKind.DROP) == 1
        assert connector.bus.handler_count(EventKind.PASTE) == 1

        connector.unregister_handlers()

        assert connector.bus.handler_count(EventKind.DELETE) == 0

    @pytest.mark.asyncio
    async def test_upload_paths_reads_from_disk(self, connector, fake_client, tmp_path):
        source = tmp_path / "outside.md"
        source.write_bytes(b"# hi")

        results = await connector.upload_paths([source])

        assert results[0].success is True
        assert fake_client.uploaded == [("folder_123", "outside.md", "text/markdown", b"# hi")]

    @pytest.mark.asyncio
    async def test_upload_paths_missing_file_raises(self, connector, tmp_path):
        with pytest.raises(LocalIOError):
            await connector.upload_paths([tmp_path / "missing.md"])

    @pytest.mark.asyncio
    async def test_status_reflects_last_pass(self, connector, vault_dir):
        (vault_dir / "synced").mkdir()
        (vault_dir / "synced" / "a.md").write_text("a")

        await connector.sync()
        status = connector.get_status()

        assert status["auth_state"] == AuthState.UNAUTHENTICATED.value
        assert status["folder_id"] == "folder_123"
        assert status["last_sync"]["uploaded"] == ["a.md"]
        assert "Uploaded a.md to Google Drive." in status["recent_notices"]


class TestConnectorAuthorization:

    @pytest.mark.asyncio
    async def test_successful_authorization_notice(self, config_store, vault, fake_client, notifier, settings):
        credential_store = Mock()
        credential_store.complete_authorization = AsyncMock()
        connector = VaultSyncConnector(
            config_store, vault, client=fake_client, credential_store=credential_store,
            notifier=notifier, settings=settings,
        )

        await connector.complete_authorization("code")

        assert notifier.messages() == ["Authentication successful!"]

    @pytest.mark.asyncio
    async def test_failed_authorization_notice(self, config_store, vault, fake_client, notifier, settings):
        credential_store = Mock()
        credential_store.complete_authorization = AsyncMock(side_effect=AuthError("invalid_grant"))
        connector = VaultSyncConnector(
            config_store, vault, client=fake_client, credential_store=credential_store,
            notifier=notifier, settings=settings,
        )

        with pytest.raises(AuthError):
            await connector.complete_authorization("code")

        assert notifier.messages() == ["Authentication failed."]


class TestVaultDeletionHandler:

    @pytest.mark.asyncio
    async def test_file_deletion_is_published(self, vault, vault_dir):
        bus = EventBus()
        received = []

        async def on_delete(event):
            received.append(event)

        bus.subscribe(EventKind.DELETE, on_delete)
        handler = VaultDeletionHandler(vault, bus, asyncio.get_running_loop())

        handler.on_deleted(WatchdogFileDeletedEvent(str(vault_dir / "synced" / "a.md")))
        await asyncio.sleep(0.05)

        assert received == [FileDeletedEvent(name="a.md", path="synced/a.md")]

    @pytest.mark.asyncio
    async def test_directory_deletion_is_ignored(self, vault, vault_dir):
        bus = EventBus()
        received = []

        async def on_delete(event):
            received.append(event)

        bus.subscribe(EventKind.DELETE, on_delete)
        handler = VaultDeletionHandler(vault, bus, asyncio.get_running_loop())

        handler.on_deleted(DirDeletedEvent(str(vault_dir / "synced")))
        await asyncio.sleep(0.05)

        assert received == []


class TestSyncScheduler:

    def test_interval_must_be_positive(self, connector):
        with pytest.raises(SchedulerError):
            SyncScheduler(connector, 0)

    @pytest.mark.asyncio
    async def test_start_schedules_periodic_job(self, connector):
        scheduler = SyncScheduler(connector, 15)

        scheduler.start()
        try:
            assert scheduler.running is True
            assert scheduler.scheduler.get_job(SYNC_JOB_ID) is not None
            assert scheduler.next_run_time() is not None
        finally:
            scheduler.stop()


@pytest.mark.integration
class TestVaultSyncApp:

    @pytest.mark.asyncio
    async def test_startup_runs_initial_pass(self, connector, settings, fake_client, vault_dir):
        (vault_dir / "synced").mkdir()
        (vault_dir / "synced" / "a.md").write_text("a")
        app = VaultSyncApp(settings=settings, connector=connector)

        await app.startup()
        await app._initial_sync

        assert app.running is True
        assert fake_client.uploaded_names == ["a.md"]
        assert connector.bus.handler_count(EventKind.DELETE) == 1
        assert app.watcher is None
        assert app.scheduler is None

        await app.shutdown()

        assert app.running is False
        assert connector.bus.handler_count(EventKind.DELETE) == 0

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_cancelled_initial_pass(self, connector, settings, fake_client, vault_dir):
        (vault_dir / "synced").mkdir()
        (vault_dir / "synced" / "a.md").write_text("a")
        fake_client.upload_delay = 10
        app = VaultSyncApp(settings=settings, connector=connector)

        await app.startup()
        task = app._initial_sync
        await asyncio.sleep(0.05)
        await app.shutdown()

        assert task.cancelled()
        assert app._initial_sync is None
        assert fake_client.uploaded == []

    @pytest.mark.asyncio
    async def test_shutdown_retrieves_initial_pass_error(self, connector, settings):
        connector.sync = AsyncMock(side_effect=RuntimeError("boom"))
        app = VaultSyncApp(settings=settings, connector=connector)

        await app.startup()
        task = app._initial_sync
        await asyncio.sleep(0.01)
        await app.shutdown()

        assert task.done()
        assert isinstance(task.exception(), RuntimeError)
        assert app._initial_sync is None


class TestCommandLine:

    def test_default_command_is_run(self):
        assert parse_args([]).command is None

    def test_upload_takes_paths(self):
        args = parse_args(["--vault", "/notes", "upload", "a.png", "b.pdf"])

        assert args.command == "upload"
        assert args.paths == ["a.png", "b.pdf"]
        assert args.vault == "/notes"

    def test_config_options(self):
        args = parse_args(["config", "--folder-id", "abc", "--file-directory", "synced"])

        assert args.folder_id == "abc"
        assert args.file_directory == "synced"
        assert args.client_id is None
