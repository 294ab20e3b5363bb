"""Trigger matchers and the registry that dispatches to them.

Every trigger type pairs a config model (what the rule owner asked for) with an
event model (what the producer emitted) and a pure matcher. Filters follow one
convention: a missing or empty list places no constraint on that field.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Literal, Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict

from .content import (
    AlertContent,
    render_contract_award,
    render_default,
    render_funding_round,
    render_keyword,
    render_launch_status,
    render_price_threshold,
    render_regulatory_filing,
    render_weather_severity,
)


class TriggerType(str, Enum):
    KEYWORD = "keyword"
    PRICE_THRESHOLD = "price_threshold"
    REGULATORY_FILING = "regulatory_filing"
    LAUNCH_STATUS = "launch_status"
    CONTRACT_AWARD = "contract_award"
    FUNDING_ROUND = "funding_round"
    WEATHER_SEVERITY = "weather_severity"


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


class _TriggerConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="ignore")


class _TriggerEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=_to_camel, extra="allow")


# Configs


class KeywordConfig(_TriggerConfig):
    keywords: list[str]
    match_type: Literal["any", "all"] = "any"
    sources: list[str] | None = None


class PriceThresholdConfig(_TriggerConfig):
    ticker: str
    condition: Literal["above", "below", "percent_change"]
    value: float


class RegulatoryFilingConfig(_TriggerConfig):
    agencies: list[str] | None = None
    categories: list[str] | None = None


class LaunchStatusConfig(_TriggerConfig):
    providers: list[str] | None = None
    status_changes: list[str] | None = None


class ContractAwardConfig(_TriggerConfig):
    agencies: list[str] | None = None
    naics_codes: list[str] | None = None
    min_value: float | None = None
    keywords: list[str] | None = None


class FundingRoundConfig(_TriggerConfig):
    sectors: list[str] | None = None
    min_amount: float | None = None
    round_types: list[str] | None = None


class WeatherSeverityConfig(_TriggerConfig):
    min_kp_index: float | None = None
    alert_types: list[str] | None = None


# Events


class KeywordEvent(_TriggerEvent):
    title: str | None = None
    content: str | None = None


class PriceThresholdEvent(_TriggerEvent):
    ticker: str
    price: float
    change: float = 0.0


class RegulatoryFilingEvent(_TriggerEvent):
    agency: str
    category: str
    title: str | None = None


class LaunchStatusEvent(_TriggerEvent):
    provider: str
    status: str
    mission_name: str | None = None


class ContractAwardEvent(_TriggerEvent):
    agency: str
    naics_code: str = ""
    value: float = 0.0
    title: str | None = None


class FundingRoundEvent(_TriggerEvent):
    sector: str
    amount: float
    round_type: str
    company: str | None = None


class WeatherSeverityEvent(_TriggerEvent):
    kp_index: float
    alert_type: str


def _equals_any(candidates: list[str] | None, value: str) -> bool:
    if not candidates:
        return True
    lowered = value.lower()
    return any(candidate.lower() == lowered for candidate in candidates)


def _at_least(threshold: float | None, value: float) -> bool:
    # A zero threshold is treated as unset.
    return not threshold or value >= threshold


def match_keyword(config: KeywordConfig, event: KeywordEvent) -> bool:
    search_text = f"{event.title or ''} {event.content or ''}".lower()
    if not search_text.strip():
        return False

    keywords = [keyword.lower() for keyword in config.keywords]
    if config.match_type == "all":
        return all(keyword in search_text for keyword in keywords)
    return any(keyword in search_text for keyword in keywords)


def match_price_threshold(config: PriceThresholdConfig, event: PriceThresholdEvent) -> bool:
    if config.ticker.lower() != event.ticker.lower():
        return False

    if config.condition == "above":
        return event.price >= config.value
    if config.condition == "below":
        return event.price <= config.value
    return abs(event.change) >= config.value


def match_regulatory_filing(config: RegulatoryFilingConfig, event: RegulatoryFilingEvent) -> bool:
    return _equals_any(config.agencies, event.agency) and _equals_any(config.categories, event.category)


def match_launch_status(config: LaunchStatusConfig, event: LaunchStatusEvent) -> bool:
    """Match a launch status change.

    Providers match when a configured name is a case-sensitive substring of the
    event provider, so ``"SpaceX"`` matches ``"SpaceX Falcon 9"``. Statuses
    compare case-insensitively.
    """

    provider_match = not config.providers or any(
        provider in event.provider for provider in config.providers
    )
    return provider_match and _equals_any(config.status_changes, event.status)


def match_contract_award(config: ContractAwardConfig, event: ContractAwardEvent) -> bool:
    agency_match = _equals_any(config.agencies, event.agency)
    naics_match = not config.naics_codes or any(
        event.naics_code.startswith(code) for code in config.naics_codes
    )
    title = (event.title or "").lower()
    keyword_match = not config.keywords or any(keyword.lower() in title for keyword in config.keywords)
    return agency_match and naics_match and _at_least(config.min_value, event.value) and keyword_match


def match_funding_round(config: FundingRoundConfig, event: FundingRoundEvent) -> bool:
    return (
        _equals_any(config.sectors, event.sector)
        and _at_least(config.min_amount, event.amount)
        and _equals_any(config.round_types, event.round_type)
    )


def match_weather_severity(config: WeatherSeverityConfig, event: WeatherSeverityEvent) -> bool:
    return _at_least(config.min_kp_index, event.kp_index) and _equals_any(config.alert_types, event.alert_type)


Matcher = Callable[[Any, Any], bool]
Renderer = Callable[[str, Mapping[str, Any]], AlertContent]


@dataclass(frozen=True, slots=True)
class TriggerDefinition:
    """Everything the processor needs to evaluate one trigger type."""

    trigger_type: str
    config_model: type[BaseModel]
    event_model: type[BaseModel]
    matcher: Matcher
    render: Renderer = render_default

    def parse_config(self, payload: Mapping[str, Any] | None) -> BaseModel:
        return self.config_model.model_validate(dict(payload or {}))

    def parse_event(self, payload: Mapping[str, Any]) -> BaseModel:
        return self.event_model.model_validate(dict(payload))


_REGISTRY: dict[str, TriggerDefinition] = {}


def register_trigger(definition: TriggerDefinition, *, replace: bool = False) -> TriggerDefinition:
    """Register a trigger type so rules of that type can be processed."""

    if definition.trigger_type in _REGISTRY and not replace:
        raise ValueError(f"Trigger type already registered: {definition.trigger_type}")
    _REGISTRY[definition.trigger_type] = definition
    return definition


def get_trigger(trigger_type: str) -> TriggerDefinition | None:
    return _REGISTRY.get(trigger_type)


def registered_trigger_types() -> list[str]:
    return sorted(_REGISTRY)


def match_trigger(trigger_type: str, config: Mapping[str, Any] | None, event: Mapping[str, Any]) -> bool:
    """Validate both payloads and run the matcher registered for ``trigger_type``.

    Unknown trigger types never match. Invalid payloads raise
    ``pydantic.ValidationError``.
    """

    definition = get_trigger(trigger_type)
    if definition is None:
        logger.warning("Unknown trigger type", trigger_type=trigger_type)
        return False
    return definition.matcher(definition.parse_config(config), definition.parse_event(event))


for _definition in (
    TriggerDefinition(TriggerType.KEYWORD.value, KeywordConfig, KeywordEvent, match_keyword, render_keyword),
    TriggerDefinition(
        TriggerType.PRICE_THRESHOLD.value,
        PriceThresholdConfig,
        PriceThresholdEvent,
        match_price_threshold,
        render_price_threshold,
    ),
    TriggerDefinition(
        TriggerType.REGULATORY_FILING.value,
        RegulatoryFilingConfig,
        RegulatoryFilingEvent,
        match_regulatory_filing,
        render_regulatory_filing,
    ),
    TriggerDefinition(
        TriggerType.LAUNCH_STATUS.value,
        LaunchStatusConfig,
        LaunchStatusEvent,
        match_launch_status,
        render_launch_status,
    ),
    TriggerDefinition(
        TriggerType.CONTRACT_AWARD.value,
        ContractAwardConfig,
        ContractAwardEvent,
        match_contract_award,
        render_contract_award,
    ),
    TriggerDefinition(
        TriggerType.FUNDING_ROUND.value,
        FundingRoundConfig,
        FundingRoundEvent,
        match_funding_round,
        render_funding_round,
    ),
    TriggerDefinition(
        TriggerType.WEATHER_SEVERITY.value,
        WeatherSeverityConfig,
        WeatherSeverityEvent,
        match_weather_severity,
        render_weather_severity,
    ),
):
    register_trigger(_definition)


__all__ = [
    "ContractAwardConfig",
    "ContractAwardEvent",
    "FundingRoundConfig",
    "FundingRoundEvent",
    "KeywordConfig",
    "KeywordEvent",
    "LaunchStatusConfig",
    "LaunchStatusEvent",
    "PriceThresholdConfig",
    "PriceThresholdEvent",
    "RegulatoryFilingConfig",
    "RegulatoryFilingEvent",
    "TriggerDefinition",
    "TriggerType",
    "WeatherSeverityConfig",
    "WeatherSeverityEvent",
    "get_trigger",
    "match_contract_award",
    "match_funding_round",
    "match_keyword",
    "match_launch_status",
    "match_price_threshold",
    "match_regulatory_filing",
    "match_trigger",
    "match_weather_severity",
    "register_trigger",
    "registered_trigger_types",
]
