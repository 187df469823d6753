from sqlalchemy import Column, String, Boolean, DateTime, JSON, Text
from sqlalchemy.sql import func

from storefront.database import Base


class WebhookEvent(Base):
    """Processed webhook deliveries, keyed by the sender's event id."""
    __tablename__ = "webhook_events"

    id = Column(String, primary_key=True)
    event_id = Column(String, nullable=False, unique=True, index=True)
    event_type = Column(String, nullable=False)
    source = Column(String, nullable=False)  # 'stripe'
    payload = Column(JSON, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    success = Column(Boolean, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
