"""Purpose-scoped tokens (password reset, email confirmation)."""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class PurposeToken(CreatedAtMixin, Base):
    """A single active token per (user, purpose). Only the digest is stored."""

    __tablename__ = "purpose_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "purpose", name="uq_purpose_tokens_user_purpose"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    purpose: Mapped[str] = mapped_column(String)
    token_hash: Mapped[str] = mapped_column(String(64))
    expires_at: Mapped[datetime] = mapped_column(DateTime)
