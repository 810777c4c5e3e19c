"""Tests for the entitlement ledger: record, list, entitlement checks."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from modelvault.common.config import ModelvaultSettings
from modelvault.common.database import DatabaseManager
from modelvault.common.exceptions import (
    EntitlementError,
    InvalidAssetIndexError,
    LedgerUnavailableError,
    PurchaseValidationError,
)
from modelvault.ledger.models import AssetTransactionModel
from modelvault.ledger.service import LedgerService


def make_settings(**overrides) -> ModelvaultSettings:
    defaults = {"db_url": "sqlite+aiosqlite://"}
    defaults.update(overrides)
    return ModelvaultSettings(**defaults)


@pytest.fixture
async def db():
    manager = DatabaseManager(make_settings())
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def svc():
    return LedgerService()


async def _count(db, session_id):
    async with db.get_session() as session:
        result = await session.execute(
            select(func.count()).select_from(AssetTransactionModel)
            .where(AssetTransactionModel.session_id == session_id)
        )
        return result.scalar_one()


async def _list(db, svc, purchaser_id):
    async with db.get_session() as session:
        return [tx async for tx in svc.list_entitlements(session, purchaser_id)]


class TestRecordPurchase:
    async def test_record_creates_transaction(self, db, svc):
        async with db.get_session() as session:
            tx, created = await svc.record_completed_purchase(
                session, "sess_abc", "user_1", "prod_9", ["s3://bucket/a.glb"],
            )
        assert created is True
        assert tx.id is not None
        assert tx.status == "completed"
        assert tx.assets == ["s3://bucket/a.glb"]
        assert tx.user_id == "user_1"

    async def test_same_session_twice_is_noop(self, db, svc):
        async with db.get_session() as session:
            first, created_first = await svc.record_completed_purchase(
                session, "sess_abc", "user_1", "prod_9", ["s3://bucket/a.glb"],
            )
        async with db.get_session() as session:
            second, created_second = await svc.record_completed_purchase(
                session, "sess_abc", "user_1", "prod_9", ["s3://bucket/a.glb"],
            )
        assert created_first is True
        assert created_second is False
        assert second.id == first.id
        assert second.assets == first.assets
        assert await _count(db, "sess_abc") == 1

    async def test_duplicate_with_different_assets_keeps_original(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(
                session, "sess_1", "user_1", "prod_1", ["models/a.glb"],
            )
        async with db.get_session() as session:
            tx, created = await svc.record_completed_purchase(
                session, "sess_1", "user_1", "prod_1", ["models/other.glb"],
            )
        assert created is False
        assert tx.assets == ["models/a.glb"]

    async def test_lost_race_returns_winner(self, db, svc, monkeypatch):
        async with db.get_session() as session:
            winner, _ = await svc.record_completed_purchase(
                session, "sess_race", "user_1", "prod_1", ["models/a.glb"],
            )

        # The loser's pre-check ran before the winner committed.
        real_get = svc.get_transaction
        calls = []

        async def stale_then_real(session, session_id):
            calls.append(session_id)
            if len(calls) == 1:
                return None
            return await real_get(session, session_id)

        monkeypatch.setattr(svc, "get_transaction", stale_then_real)
        async with db.get_session() as session:
            tx, created = await svc.record_completed_purchase(
                session, "sess_race", "user_1", "prod_1", ["models/b.glb"],
            )
            assert created is False
            assert tx.id == winner.id
            assert tx.assets == ["models/a.glb"]
        assert len(calls) == 2
        assert await _count(db, "sess_race") == 1

    @pytest.mark.parametrize("kwargs", [
        {"session_id": ""},
        {"session_id": None},
        {"purchaser_id": "   "},
        {"product_id": ""},
        {"asset_refs": []},
        {"asset_refs": None},
        {"asset_refs": "models/a.glb"},
        {"asset_refs": ["models/a.glb", ""]},
    ])
    async def test_missing_fields_fail_fast(self, db, svc, kwargs):
        args = {
            "session_id": "sess_x",
            "purchaser_id": "user_1",
            "product_id": "prod_1",
            "asset_refs": ["models/a.glb"],
            **kwargs,
        }
        with pytest.raises(PurchaseValidationError):
            async with db.get_session() as session:
                await svc.record_completed_purchase(session, **args)
        assert await _count(db, "sess_x") == 0


class TestListEntitlements:
    async def test_most_recent_first(self, db, svc):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        async with db.get_session() as session:
            for i, day in enumerate([3, 1, 2]):
                await svc.record_completed_purchase(
                    session, f"sess_{i}", "user_1", f"prod_{i}", [f"models/{i}.glb"],
                    transaction_date=base + timedelta(days=day),
                )
        txs = await _list(db, svc, "user_1")
        assert [tx.product_id for tx in txs] == ["prod_0", "prod_2", "prod_1"]

    async def test_filters_by_purchaser(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(session, "s1", "user_1", "p1", ["a"])
            await svc.record_completed_purchase(session, "s2", "user_2", "p2", ["b"])
            await svc.record_completed_purchase(session, "s3", "user_1", "p3", ["c"])
        txs = await _list(db, svc, "user_1")
        assert {tx.session_id for tx in txs} == {"s1", "s3"}
        assert all(tx.user_id == "user_1" for tx in txs)

    async def test_unknown_purchaser_is_empty(self, db, svc):
        assert await _list(db, svc, "nobody") == []

    async def test_each_call_sees_new_rows(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(session, "s1", "user_1", "p1", ["a"])
        assert len(await _list(db, svc, "user_1")) == 1
        async with db.get_session() as session:
            await svc.record_completed_purchase(session, "s2", "user_1", "p2", ["b"])
        assert len(await _list(db, svc, "user_1")) == 2


class TestIsEntitled:
    async def test_entitled_after_record(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(
                session, "sess_abc", "user_1", "prod_9", ["s3://bucket/a.glb"],
            )
        async with db.get_session() as session:
            assert await svc.is_entitled(session, "user_1", "s3://bucket/a.glb") is True
            assert await svc.is_entitled(session, "user_2", "s3://bucket/a.glb") is False
            assert await svc.is_entitled(session, "user_1", "s3://bucket/b.glb") is False

    async def test_failed_transactions_do_not_entitle(self, db, svc):
        async with db.get_session() as session:
            session.add(AssetTransactionModel(
                user_id="user_1", product_id="p1", session_id="s_failed",
                status="failed", assets=["models/a.glb"],
            ))
        async with db.get_session() as session:
            assert await svc.is_entitled(session, "user_1", "models/a.glb") is False

    async def test_empty_inputs(self, db, svc):
        async with db.get_session() as session:
            assert await svc.is_entitled(session, "", "models/a.glb") is False
            assert await svc.is_entitled(session, "user_1", "") is False


class TestResolveDownload:
    async def test_returns_key_by_index(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(
                session, "s1", "user_1", "p1", ["models/a.glb", "models/b.stl"],
            )
        async with db.get_session() as session:
            assert await svc.resolve_download(session, "user_1", "p1", 1) == "models/b.stl"

    async def test_bad_index(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(session, "s1", "user_1", "p1", ["models/a.glb"])
        with pytest.raises(InvalidAssetIndexError):
            async with db.get_session() as session:
                await svc.resolve_download(session, "user_1", "p1", 5)

    async def test_not_purchased(self, db, svc):
        async with db.get_session() as session:
            await svc.record_completed_purchase(session, "s1", "user_1", "p1", ["models/a.glb"])
        with pytest.raises(EntitlementError):
            async with db.get_session() as session:
                await svc.resolve_download(session, "user_2", "p1", 0)


class TestLedgerOutage:
    @staticmethod
    async def _fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    async def test_record_maps_to_retryable_error(self, db, svc, monkeypatch):
        monkeypatch.setattr(svc, "get_transaction", self._fail)
        with pytest.raises(LedgerUnavailableError) as exc_info:
            async with db.get_session() as session:
                await svc.record_completed_purchase(
                    session, "sess_abc", "user_1", "prod_9", ["models/a.glb"],
                )
        assert exc_info.value.retryable is True
        assert exc_info.value.code == "LEDGER_UNAVAILABLE"
        assert await _count(db, "sess_abc") == 0

    async def test_session_maps_read_failures(self, db, svc, monkeypatch):
        monkeypatch.setattr(svc, "is_entitled", self._fail)
        with pytest.raises(LedgerUnavailableError) as exc_info:
            async with db.get_session() as session:
                await svc.is_entitled(session, "user_1", "models/a.glb")
        assert exc_info.value.retryable is True
