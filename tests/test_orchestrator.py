"""Tests for wiring the data-sync layer from settings."""

import pytest

from moneybook.config import get_settings
from moneybook.models.records import RecordKind
from moneybook.orchestrator import create_data_sync
from moneybook.services.image import ImageUploadError
from moneybook.services.storage import InMemoryRecordStore
from moneybook.sync import IdentityProvider


@pytest.fixture
def unconfigured(monkeypatch):
    for name in (
        "CLOUDINARY_CLOUD_NAME",
        "CLOUDINARY_API_KEY",
        "CLOUDINARY_API_SECRET",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


class TestCreateDataSync:
    """Tests for the factory function."""

    def test_without_storage_uses_memory_store(self, unconfigured):
        sync = create_data_sync(use_storage=False)
        assert isinstance(sync.store, InMemoryRecordStore)

    def test_falls_back_when_backends_not_configured(self, unconfigured):
        sync = create_data_sync(use_storage=True)
        assert isinstance(sync.store, InMemoryRecordStore)

    @pytest.mark.asyncio
    async def test_wired_sync_works_end_to_end(self, unconfigured):
        identity = IdentityProvider()
        sync = create_data_sync(use_storage=False, identity=identity)
        await sync.attach()
        await identity.set_user("u1")

        account = await sync.add_account({"name": "Wallet"})

        assert sync.identity is identity
        assert sync.accounts == (account,)
        assert sync.store.count(RecordKind.CATEGORIES, "u1") > 0
        with pytest.raises(ImageUploadError):
            await sync.upload_transaction_image(b"bytes", "receipt.png")

    @pytest.mark.asyncio
    async def test_settings_control_seeding(self, unconfigured):
        unconfigured.setenv("SEED_DEFAULT_CATEGORIES", "false")
        sync = create_data_sync(use_storage=False, identity=IdentityProvider("u1"))

        await sync.attach()

        assert sync.categories == ()
