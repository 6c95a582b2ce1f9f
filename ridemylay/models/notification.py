"""
Durable notification rows.

Notifications are created by the gateway and the REST layer, change only
through read-state transitions and are purged after the retention window
(see ridemylay.realtime.retention).
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy models are data classes, no instance methods needed

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_recipient_read_created", "recipient_id", "read", "created_at"),
        Index("ix_notifications_created", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    recipient_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # NotificationType / EntityType values from ridemylay.schemas.realtime
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)

    def to_payload(self) -> dict[str, Any]:
        """Wire representation pushed as new_notification / notification_updated."""
        return {
            "_id": self.id,
            "recipient": self.recipient_id,
            "sender": self.sender_id,
            "type": self.type,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "read": self.read,
            "content": self.content,
            "metadata": dict(self.extra or {}),
            "createdAt": self.created_at.isoformat(),
        }
