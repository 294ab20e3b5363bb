"""Human-readable alert content per trigger type."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class AlertContent:
    title: str
    message: str


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)


def _is_positive(value: Any) -> bool:
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def render_keyword(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(
        title=f"Keyword Alert: {rule_name}",
        message=f'Your keyword alert "{rule_name}" matched: {data.get("title") or "New content detected"}',
    )


def render_price_threshold(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    ticker = data.get("ticker")
    change = data.get("change")
    sign = "+" if _is_positive(change) else ""
    return AlertContent(
        title=f"Price Alert: {ticker or rule_name}",
        message=f"{ticker} is now at ${_format_number(data.get('price'))} ({sign}{_format_number(change)}%)",
    )


def render_regulatory_filing(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    agency = data.get("agency")
    detail = data.get("title") or data.get("category") or "See details"
    return AlertContent(
        title=f"Regulatory Filing: {agency or 'New Filing'}",
        message=f"New regulatory filing from {agency}: {detail}",
    )


def render_launch_status(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    """Name the provider and quote the new status; append the mission when known."""

    provider = data.get("provider")
    mission = data.get("missionName")
    suffix = f" - {mission}" if mission else ""
    return AlertContent(
        title=f"Launch Status Update: {provider or 'Launch Event'}",
        message=f'{provider} launch status changed to "{data.get("status")}"{suffix}',
    )


def render_contract_award(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    agency = data.get("agency")
    value = data.get("value")
    amount = f" (${_format_number(value)}M)" if value else ""
    return AlertContent(
        title=f"Contract Alert: {agency or 'New Contract'}",
        message=f"New contract from {agency}: {data.get('title') or 'See details'}{amount}",
    )


def render_funding_round(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    company = data.get("company")
    return AlertContent(
        title=f"Funding Alert: {company or rule_name}",
        message=(
            f"{company or 'A company'} raised ${_format_number(data.get('amount'))}M "
            f"in a {data.get('roundType')} round ({data.get('sector')})"
        ),
    )


def render_weather_severity(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    alert_type = data.get("alertType")
    return AlertContent(
        title=f"Space Weather Alert: {alert_type or 'Geomagnetic Activity'}",
        message=f"Space weather alert: {alert_type or 'Activity detected'} (Kp Index: {_format_number(data.get('kpIndex'))})",
    )


def render_default(rule_name: str, data: Mapping[str, Any]) -> AlertContent:
    return AlertContent(title=f"Alert: {rule_name}", message=f'Alert rule "{rule_name}" triggered')


__all__ = [
    "AlertContent",
    "render_contract_award",
    "render_default",
    "render_funding_round",
    "render_keyword",
    "render_launch_status",
    "render_price_threshold",
    "render_regulatory_filing",
    "render_weather_severity",
]
