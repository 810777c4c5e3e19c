"""Dependency injection singletons for Modelvault."""

from modelvault.common.config import get_settings
from modelvault.common.database import DatabaseManager
from modelvault.ledger.service import LedgerService
from modelvault.uploads.rules import rules_from_settings
from modelvault.uploads.service import UploadService
from modelvault.uploads.storage import LocalObjectStore, ObjectStore

_db: DatabaseManager | None = None
_ledger: LedgerService | None = None
_store: ObjectStore | None = None
_uploads: UploadService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_ledger_service() -> LedgerService:
    global _ledger
    if _ledger is None:
        _ledger = LedgerService()
    return _ledger


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        _store = LocalObjectStore(get_settings().storage_dir)
    return _store


def get_upload_service() -> UploadService:
    global _uploads
    if _uploads is None:
        _uploads = UploadService(get_object_store(), rules_from_settings(get_settings()))
    return _uploads


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _ledger, _store, _uploads
    _db = None
    _ledger = None
    _store = None
    _uploads = None
