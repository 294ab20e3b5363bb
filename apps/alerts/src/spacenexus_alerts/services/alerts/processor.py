"""Evaluate alert rules against an incoming event and fan out deliveries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Sequence
from uuid import UUID, uuid4

from loguru import logger
from pydantic import BaseModel, ValidationError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from spacenexus_alerts.models import AlertDelivery, AlertDeliveryStatus, AlertHistory, AlertRule
from spacenexus_alerts.observability.alerts import AlertObservabilityStore, get_alert_store

from .matchers import TriggerDefinition, get_trigger

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on round-trip)."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(slots=True)
class _RuleSnapshot:
    id: UUID
    user_id: UUID
    name: str
    trigger_config: dict[str, Any]
    channels: list[str]
    priority: str
    last_triggered_at: datetime | None
    cooldown_minutes: int

    @classmethod
    def from_model(cls, rule: AlertRule) -> "_RuleSnapshot":
        return cls(
            id=rule.id,
            user_id=rule.user_id,
            name=rule.name,
            trigger_config=dict(rule.trigger_config or {}),
            channels=[str(channel) for channel in (rule.channels or [])],
            priority=rule.priority,
            last_triggered_at=ensure_utc(rule.last_triggered_at),
            cooldown_minutes=rule.cooldown_minutes or 0,
        )

    def cooldown_ends_at(self) -> datetime | None:
        if self.last_triggered_at is None:
            return None
        return self.last_triggered_at + timedelta(minutes=self.cooldown_minutes)


class AlertProcessor:
    """Match active rules of one trigger type against an event.

    Each rule is its own unit of work: the history row, its deliveries and the
    rule's trigger bookkeeping commit together, or are rolled back together
    without affecting any other rule. The processor therefore owns commit
    boundaries on the session it receives.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Clock | None = None,
        observability: AlertObservabilityStore | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or utcnow
        self._observability = observability or get_alert_store()

    async def process(self, trigger_type: str, event_data: Mapping[str, Any]) -> int:
        """Return the number of rules that fired and were persisted."""

        try:
            rules = await self._load_rules(trigger_type)
        except Exception:
            await self._session.rollback()
            logger.exception("Failed to load alert rules", trigger_type=trigger_type)
            return 0

        if not rules:
            logger.debug("No active alert rules for trigger type", trigger_type=trigger_type)
            return 0

        definition = get_trigger(trigger_type)
        if definition is None:
            logger.warning("Unknown trigger type; skipping alert rules", trigger_type=trigger_type, rules=len(rules))
            return 0

        try:
            event = definition.parse_event(event_data)
        except ValidationError as exc:
            logger.error(
                "Alert event payload failed validation",
                trigger_type=trigger_type,
                errors=exc.errors(include_url=False),
            )
            return 0

        logger.info("Processing alert rules", trigger_type=trigger_type, rule_count=len(rules))
        now = ensure_utc(self._clock())
        triggered = 0

        for rule in rules:
            try:
                fired = await self._process_rule(rule, definition, event, event_data, now)
            except Exception:
                await self._session.rollback()
                self._observability.record_rule_failure(trigger_type)
                logger.exception("Failed to process alert rule", rule_id=str(rule.id), trigger_type=trigger_type)
                continue
            if fired:
                triggered += 1

        logger.info(
            "Alert processing complete",
            trigger_type=trigger_type,
            rule_count=len(rules),
            triggered=triggered,
        )
        return triggered

    async def _load_rules(self, trigger_type: str) -> list[_RuleSnapshot]:
        stmt = (
            select(AlertRule)
            .where(AlertRule.trigger_type == trigger_type, AlertRule.is_active.is_(True))
            .order_by(AlertRule.created_at, AlertRule.id)
        )
        result = await self._session.execute(stmt)
        return [_RuleSnapshot.from_model(rule) for rule in result.scalars().all()]

    async def _process_rule(
        self,
        rule: _RuleSnapshot,
        definition: TriggerDefinition,
        event: BaseModel,
        event_data: Mapping[str, Any],
        now: datetime,
    ) -> bool:
        cooldown_end = rule.cooldown_ends_at()
        if cooldown_end is not None and now < cooldown_end:
            self._observability.record_cooldown_skip(definition.trigger_type)
            logger.debug(
                "Alert rule in cooldown, skipping",
                rule_id=str(rule.id),
                cooldown_end=cooldown_end.isoformat(),
            )
            return False

        try:
            config = definition.parse_config(rule.trigger_config)
        except ValidationError as exc:
            logger.warning(
                "Alert rule has invalid trigger config",
                rule_id=str(rule.id),
                trigger_type=definition.trigger_type,
                errors=exc.errors(include_url=False),
            )
            return False

        if not definition.matcher(config, event):
            return False

        await self._fan_out(rule, definition, event, event_data, now)
        self._observability.record_rule_triggered(definition.trigger_type, rule.channels)
        logger.info(
            "Alert rule triggered",
            rule_id=str(rule.id),
            user_id=str(rule.user_id),
            trigger_type=definition.trigger_type,
            channels=rule.channels,
        )
        return True

    async def _fan_out(
        self,
        rule: _RuleSnapshot,
        definition: TriggerDefinition,
        event: BaseModel,
        event_data: Mapping[str, Any],
        now: datetime,
    ) -> None:
        history_id = uuid4()
        self._session.add(
            AlertHistory(
                id=history_id,
                alert_rule_id=rule.id,
                user_id=rule.user_id,
                trigger_type=definition.trigger_type,
                trigger_data=dict(event_data),
            )
        )
        await self._session.flush()

        # Renderers read camelCase keys; events may arrive with snake_case names.
        render_data = {**event_data, **event.model_dump(by_alias=True, exclude_unset=True)}
        content = definition.render(rule.name, render_data)
        payload = {"triggerType": definition.trigger_type, "priority": rule.priority, **event_data}
        self._session.add_all(
            _build_deliveries(rule, history_id, content.title, content.message, payload, rule.channels)
        )
        await self._session.flush()

        await self._session.execute(
            update(AlertRule)
            .where(AlertRule.id == rule.id)
            .values(last_triggered_at=now, trigger_count=AlertRule.trigger_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()


def _build_deliveries(
    rule: _RuleSnapshot,
    history_id: UUID,
    title: str,
    message: str,
    payload: Mapping[str, Any],
    channels: Sequence[str],
) -> list[AlertDelivery]:
    return [
        AlertDelivery(
            alert_rule_id=rule.id,
            alert_history_id=history_id,
            user_id=rule.user_id,
            channel=channel,
            status=AlertDeliveryStatus.PENDING.value,
            title=title,
            message=message,
            data=dict(payload),
        )
        for channel in channels
    ]


async def process_alerts(
    trigger_type: str,
    event_data: Mapping[str, Any],
    session: AsyncSession,
    *,
    clock: Clock | None = None,
) -> int:
    """Process all active alert rules of ``trigger_type`` against ``event_data``."""

    return await AlertProcessor(session, clock=clock).process(trigger_type, event_data)


__all__ = ["AlertProcessor", "Clock", "ensure_utc", "process_alerts", "utcnow"]
