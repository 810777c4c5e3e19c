"""Pydantic schemas for ledger endpoints."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class TransactionResponse(BaseModel):
    id: str
    user_id: str
    product_id: str
    session_id: str
    status: str
    assets: list[str]
    transaction_date: datetime

    model_config = {"from_attributes": True}

    @field_validator("transaction_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; stored values are always UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class TransactionList(BaseModel):
    transactions: list[TransactionResponse]


class EntitlementCheck(BaseModel):
    asset: str
    entitled: bool


class RecordPurchaseRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    purchaser_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    assets: list[str] = Field(..., min_length=1)


class RecordPurchaseResponse(BaseModel):
    created: bool
    transaction: TransactionResponse


class WebhookAck(BaseModel):
    received: bool = True
    recorded: int = 0
    duplicates: int = 0
    rejected: int = 0
