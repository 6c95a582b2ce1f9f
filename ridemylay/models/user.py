"""
Minimal user reference rows.

Accounts are owned by the REST API; the realtime gateway only needs to
resolve a token's subject to a username and record last activity.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy models are data classes, no instance methods needed

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # Timestamps (persist naive UTC)
    last_active: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
