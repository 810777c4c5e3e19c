"""Ledger API router: payment webhook, purchase history, downloads."""

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response

from modelvault.common.config import get_settings
from modelvault.common.exceptions import (
    EntitlementError,
    InvalidAssetIndexError,
    LedgerUnavailableError,
    PurchaseValidationError,
)
from modelvault.common.security import require_api_key, require_user
from modelvault.ledger.schemas import (
    EntitlementCheck,
    RecordPurchaseRequest,
    RecordPurchaseResponse,
    TransactionList,
    TransactionResponse,
    WebhookAck,
)
from modelvault.ledger.stripe_webhook import parse_checkout_completed, verify_stripe_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assets")
webhook_router = APIRouter(prefix="/webhooks")


def _get_service():
    from modelvault.deps import get_ledger_service
    return get_ledger_service()


def _get_db():
    from modelvault.deps import get_db
    return get_db()


def _get_store():
    from modelvault.deps import get_object_store
    return get_object_store()


def _unavailable(e: LedgerUnavailableError) -> HTTPException:
    return HTTPException(status_code=503, detail={"error": e.message, "code": e.code})


# ── Payment trigger ──

@webhook_router.post("/stripe", response_model=WebhookAck)
async def stripe_checkout_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
):
    """Record digital purchases from checkout.session.completed.

    Stripe redelivers on any non-2xx answer, so storage failures return 503
    and rely on the session id to keep the retry idempotent.
    """
    body = await request.body()
    settings = get_settings()

    if settings.stripe_webhook_secret:
        if not verify_stripe_signature(
            body, stripe_signature, settings.stripe_webhook_secret,
            tolerance=settings.stripe_signature_tolerance,
        ):
            logger.warning("Invalid Stripe webhook signature")
            raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event_data = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    try:
        events = parse_checkout_completed(event_data)
    except PurchaseValidationError as e:
        logger.error("Unusable checkout payload: %s", e.message)
        raise HTTPException(status_code=400, detail={"error": e.message, "code": e.code})

    ack = WebhookAck()
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            for event in events:
                try:
                    _, created = await svc.record_completed_purchase(
                        session,
                        session_id=event.session_id,
                        purchaser_id=event.purchaser_id,
                        product_id=event.product_id,
                        asset_refs=event.asset_refs,
                    )
                except PurchaseValidationError as e:
                    logger.warning(
                        "Skipping purchase %s: %s", event.session_id, e.message,
                    )
                    ack.rejected += 1
                    continue
                if created:
                    ack.recorded += 1
                else:
                    ack.duplicates += 1
    except LedgerUnavailableError as e:
        raise _unavailable(e)
    return ack


@router.post("/transactions", response_model=RecordPurchaseResponse)
async def record_purchase(body: RecordPurchaseRequest, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            tx, created = await svc.record_completed_purchase(
                session,
                session_id=body.session_id,
                purchaser_id=body.purchaser_id,
                product_id=body.product_id,
                asset_refs=body.assets,
            )
            return RecordPurchaseResponse(
                created=created,
                transaction=TransactionResponse.model_validate(tx),
            )
    except PurchaseValidationError as e:
        raise HTTPException(status_code=400, detail={"error": e.message, "code": e.code})
    except LedgerUnavailableError as e:
        raise _unavailable(e)


# ── Purchaser queries ──

@router.get("/transactions", response_model=TransactionList)
async def my_transactions(user_id: str = Depends(require_user)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            items = [
                TransactionResponse.model_validate(tx)
                async for tx in svc.list_entitlements(session, user_id)
            ]
    except LedgerUnavailableError as e:
        raise _unavailable(e)
    return TransactionList(transactions=items)


@router.get("/transactions/{session_id}", response_model=TransactionResponse)
async def get_transaction(session_id: str, _=Depends(require_api_key)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            tx = await svc.get_transaction(session, session_id)
            if tx is None:
                raise HTTPException(status_code=404, detail="Transaction not found")
            return TransactionResponse.model_validate(tx)
    except LedgerUnavailableError as e:
        raise _unavailable(e)


@router.get("/entitled", response_model=EntitlementCheck)
async def check_entitlement(
    asset: str = Query(..., min_length=1),
    user_id: str = Depends(require_user),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            entitled = await svc.is_entitled(session, user_id, asset)
    except LedgerUnavailableError as e:
        raise _unavailable(e)
    return EntitlementCheck(asset=asset, entitled=entitled)


def _parse_index(idx: str | None) -> int:
    try:
        index = int(idx)
    except (TypeError, ValueError):
        raise InvalidAssetIndexError()
    if index < 0:
        raise InvalidAssetIndexError()
    return index


@router.get("/download/{product_id}")
async def download_asset(
    product_id: str,
    idx: str | None = Query(None),
    user_id: str = Depends(require_user),
):
    """Stream one purchased asset, picked by its position in the purchase."""
    svc = _get_service()
    db = _get_db()
    store = _get_store()
    try:
        index = _parse_index(idx)
        async with db.get_session() as session:
            key = await svc.resolve_download(session, user_id, product_id, index)
            if not await svc.is_entitled(session, user_id, key):
                raise EntitlementError()
    except InvalidAssetIndexError as e:
        raise HTTPException(status_code=400, detail={"error": e.message, "code": e.code})
    except EntitlementError as e:
        raise HTTPException(status_code=403, detail={"error": e.message, "code": e.code})
    except LedgerUnavailableError as e:
        raise _unavailable(e)

    try:
        data = await store.get(key)
    except (FileNotFoundError, ValueError):
        logger.error("Entitled asset missing from storage: %s", key)
        raise HTTPException(status_code=404, detail="Asset not found in storage")

    filename = key.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
