"""SQLAlchemy models for the asset entitlement ledger."""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from modelvault.common.models import Base, TimestampMixin, generate_uuid, utcnow

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class AssetTransactionModel(Base, TimestampMixin):
    """One completed checkout granting a user access to a product's assets.

    Rows are append-only; session_id is the idempotency key for webhook
    redelivery and is enforced by a unique index.
    """

    __tablename__ = "asset_transactions"
    __table_args__ = (
        CheckConstraint(
            f"status IN ('{STATUS_COMPLETED}', '{STATUS_FAILED}')",
            name="ck_asset_transaction_status",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=STATUS_COMPLETED, nullable=False)
    session_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    assets: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
