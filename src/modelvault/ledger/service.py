"""Ledger service: record purchases, list and check entitlements."""

import logging
from datetime import datetime
from typing import AsyncIterator, Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from modelvault.common.exceptions import (
    EntitlementError,
    InvalidAssetIndexError,
    LedgerUnavailableError,
    PurchaseValidationError,
)
from modelvault.common.models import utcnow
from modelvault.ledger.models import STATUS_COMPLETED, AssetTransactionModel

logger = logging.getLogger(__name__)


def _normalize_refs(asset_refs: Iterable[str] | None) -> list[str]:
    if asset_refs is None or isinstance(asset_refs, (str, bytes)):
        raise PurchaseValidationError("asset_refs must be a non-empty list of strings")
    refs = []
    for ref in asset_refs:
        if not isinstance(ref, str) or not ref.strip():
            raise PurchaseValidationError("asset_refs entries must be non-empty strings")
        refs.append(ref.strip())
    if not refs:
        raise PurchaseValidationError("asset_refs must not be empty")
    return refs


def _require(value: str | None, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PurchaseValidationError(f"{field} is required")
    return value.strip()


class LedgerService:
    """Append-only record of which user owns which purchased assets."""

    # ── Write ──

    async def record_completed_purchase(
        self,
        session: AsyncSession,
        session_id: str,
        purchaser_id: str,
        product_id: str,
        asset_refs: Iterable[str],
        transaction_date: datetime | None = None,
    ) -> tuple[AssetTransactionModel, bool]:
        """Record a completed checkout. Returns (transaction, created).

        A session_id that is already in the ledger is a no-op: the stored
        transaction comes back with created=False, whatever asset_refs say.
        """
        session_id = _require(session_id, "session_id")
        purchaser_id = _require(purchaser_id, "purchaser_id")
        product_id = _require(product_id, "product_id")
        refs = _normalize_refs(asset_refs)

        try:
            existing = await self.get_transaction(session, session_id)
            if existing is not None:
                logger.info("Purchase already recorded", extra={"session_id": session_id})
                return existing, False

            tx = AssetTransactionModel(
                user_id=purchaser_id,
                product_id=product_id,
                session_id=session_id,
                status=STATUS_COMPLETED,
                assets=refs,
                transaction_date=transaction_date or utcnow(),
            )
            try:
                async with session.begin_nested():
                    session.add(tx)
                    await session.flush()
            except IntegrityError:
                # Lost a race with a concurrent delivery of the same event.
                winner = await self.get_transaction(session, session_id)
                if winner is None:
                    raise
                logger.info("Purchase recorded concurrently", extra={"session_id": session_id})
                return winner, False
        except (OperationalError, InterfaceError) as e:
            logger.exception("Ledger write failed")
            raise LedgerUnavailableError(str(e.orig)) from e

        logger.info(
            "Purchase recorded",
            extra={"session_id": session_id, "user_id": purchaser_id,
                   "product_id": product_id, "assets": len(refs)},
        )
        return tx, True

    # ── Read ──

    async def get_transaction(
        self, session: AsyncSession, session_id: str,
    ) -> AssetTransactionModel | None:
        result = await session.execute(
            select(AssetTransactionModel).where(AssetTransactionModel.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def list_entitlements(
        self, session: AsyncSession, purchaser_id: str,
    ) -> AsyncIterator[AssetTransactionModel]:
        """Yield the purchaser's transactions, most recent first.

        Every call runs a fresh query.
        """
        query = (
            select(AssetTransactionModel)
            .where(AssetTransactionModel.user_id == purchaser_id)
            .order_by(
                AssetTransactionModel.transaction_date.desc(),
                AssetTransactionModel.created_at.desc(),
            )
        )
        try:
            rows = await session.stream_scalars(query)
        except (OperationalError, InterfaceError) as e:
            raise LedgerUnavailableError(str(e.orig)) from e
        try:
            async for tx in rows:
                yield tx
        finally:
            await rows.close()

    async def is_entitled(
        self, session: AsyncSession, purchaser_id: str, asset_ref: str,
    ) -> bool:
        """True iff a completed transaction of purchaser_id lists asset_ref."""
        if not purchaser_id or not asset_ref:
            return False
        result = await session.execute(
            select(AssetTransactionModel.assets).where(
                AssetTransactionModel.user_id == purchaser_id,
                AssetTransactionModel.status == STATUS_COMPLETED,
            )
        )
        return any(asset_ref in (assets or []) for assets in result.scalars())

    async def resolve_download(
        self,
        session: AsyncSession,
        purchaser_id: str,
        product_id: str,
        index: int,
    ) -> str:
        """Return the asset key at index for a product the purchaser owns."""
        result = await session.execute(
            select(AssetTransactionModel)
            .where(
                AssetTransactionModel.user_id == purchaser_id,
                AssetTransactionModel.product_id == product_id,
                AssetTransactionModel.status == STATUS_COMPLETED,
            )
            .order_by(AssetTransactionModel.transaction_date.desc())
            .limit(1)
        )
        tx = result.scalar_one_or_none()
        if tx is None:
            raise EntitlementError(f"Product '{product_id}' not purchased")
        if not 0 <= index < len(tx.assets):
            raise InvalidAssetIndexError(f"Invalid asset index {index}")
        return tx.assets[index]
