"""Alert rule, history, and delivery models."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from spacenexus_alerts.db.base import Base


class AlertChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"
    WEBHOOK = "webhook"


class AlertDeliveryStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"


class AlertPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class AlertRule(Base):
    """A user's standing subscription to one trigger type."""

    __tablename__ = "alert_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String(length=200), nullable=False)
    description = Column(Text, nullable=True)
    trigger_type = Column(String(length=64), nullable=False)
    trigger_config = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=False, default=dict)
    channels = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=False, default=list)
    priority = Column(String(length=16), nullable=False, default=AlertPriority.NORMAL.value, server_default="normal")
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    cooldown_minutes = Column(Integer, nullable=False, default=60, server_default="60")
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    trigger_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (Index("ix_alert_rules_trigger_active", "trigger_type", "is_active"),)


class AlertHistory(Base):
    """Immutable audit record of one rule firing for one event."""

    __tablename__ = "alert_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    alert_rule_id = Column(UUID(as_uuid=True), ForeignKey("alert_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    trigger_type = Column(String(length=64), nullable=False)
    trigger_data = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class AlertDelivery(Base):
    """Outbound notification task for a single channel."""

    __tablename__ = "alert_deliveries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    alert_rule_id = Column(UUID(as_uuid=True), ForeignKey("alert_rules.id", ondelete="SET NULL"), nullable=True, index=True)
    alert_history_id = Column(
        UUID(as_uuid=True), ForeignKey("alert_history.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    channel = Column(String(length=32), nullable=False)
    status = Column(String(length=16), nullable=False, default=AlertDeliveryStatus.PENDING.value, server_default="pending")
    title = Column(String(length=500), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=True)
    source = Column(String(length=32), nullable=True)
    fail_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_alert_deliveries_status_channel", "status", "channel"),)


__all__ = [
    "AlertChannel",
    "AlertDelivery",
    "AlertDeliveryStatus",
    "AlertHistory",
    "AlertPriority",
    "AlertRule",
]
