import pytest
from pydantic import ValidationError

from spacenexus_alerts.services.alerts.content import AlertContent
from spacenexus_alerts.services.alerts.matchers import (
    ContractAwardConfig,
    ContractAwardEvent,
    FundingRoundConfig,
    FundingRoundEvent,
    KeywordConfig,
    KeywordEvent,
    LaunchStatusConfig,
    LaunchStatusEvent,
    PriceThresholdConfig,
    PriceThresholdEvent,
    RegulatoryFilingConfig,
    RegulatoryFilingEvent,
    TriggerDefinition,
    TriggerType,
    WeatherSeverityConfig,
    WeatherSeverityEvent,
    get_trigger,
    match_contract_award,
    match_funding_round,
    match_keyword,
    match_launch_status,
    match_price_threshold,
    match_regulatory_filing,
    match_trigger,
    match_weather_severity,
    register_trigger,
    registered_trigger_types,
)


def _launch(provider: str = "SpaceX Falcon 9", status: str = "go") -> LaunchStatusEvent:
    return LaunchStatusEvent(provider=provider, status=status)


def test_launch_status_empty_config_matches_any_event() -> None:
    assert match_launch_status(LaunchStatusConfig(), _launch())
    assert match_launch_status(LaunchStatusConfig(providers=[], status_changes=[]), _launch("Rocket Lab", "scrub"))


def test_launch_status_empty_providers_matches_on_status_alone() -> None:
    config = LaunchStatusConfig(providers=[], status_changes=["go", "scrub"])

    assert match_launch_status(config, _launch("Blue Origin New Glenn", "scrub"))
    assert not match_launch_status(config, _launch("Blue Origin New Glenn", "success"))


def test_launch_status_provider_containment_is_directional() -> None:
    assert match_launch_status(LaunchStatusConfig(providers=["SpaceX"]), _launch("SpaceX Falcon 9"))
    assert not match_launch_status(LaunchStatusConfig(providers=["SpaceX Falcon 9"]), _launch("SpaceX"))


def test_launch_status_provider_is_case_sensitive_status_is_not() -> None:
    assert not match_launch_status(LaunchStatusConfig(providers=["spacex"]), _launch("SpaceX Falcon 9"))
    assert match_launch_status(LaunchStatusConfig(status_changes=["GO"]), _launch(status="go"))
    assert match_launch_status(LaunchStatusConfig(status_changes=["scrub"]), _launch(status="SCRUB"))


def test_launch_status_requires_both_filters() -> None:
    config = LaunchStatusConfig(providers=["SpaceX"], status_changes=["go"])

    assert match_launch_status(config, _launch("SpaceX Falcon 9", "go"))
    assert not match_launch_status(config, _launch("SpaceX Falcon 9", "scrub"))
    assert not match_launch_status(config, _launch("ULA Vulcan", "go"))


def test_keyword_any_and_all() -> None:
    event = KeywordEvent(title="Starship static fire", content="Raptor engines lit at Starbase")

    assert match_keyword(KeywordConfig(keywords=["raptor", "lunar"]), event)
    assert not match_keyword(KeywordConfig(keywords=["raptor", "lunar"], match_type="all"), event)
    assert match_keyword(KeywordConfig(keywords=["STARSHIP", "raptor"], match_type="all"), event)


def test_keyword_never_matches_empty_text() -> None:
    assert not match_keyword(KeywordConfig(keywords=[""]), KeywordEvent())
    assert not match_keyword(KeywordConfig(keywords=["mars"]), KeywordEvent(title="   "))


def test_price_threshold_conditions() -> None:
    event = PriceThresholdEvent(ticker="rklb", price=20.0, change=-6.5)

    assert match_price_threshold(PriceThresholdConfig(ticker="RKLB", condition="above", value=20), event)
    assert not match_price_threshold(PriceThresholdConfig(ticker="RKLB", condition="below", value=19.99), event)
    assert match_price_threshold(PriceThresholdConfig(ticker="RKLB", condition="percent_change", value=5), event)
    assert not match_price_threshold(PriceThresholdConfig(ticker="ASTS", condition="above", value=1), event)


def test_regulatory_filing_filters() -> None:
    event = RegulatoryFilingEvent(agency="FCC", category="Spectrum")

    assert match_regulatory_filing(RegulatoryFilingConfig(), event)
    assert match_regulatory_filing(RegulatoryFilingConfig(agencies=["fcc"], categories=["spectrum"]), event)
    assert not match_regulatory_filing(RegulatoryFilingConfig(agencies=["FAA"]), event)


def test_contract_award_filters() -> None:
    event = ContractAwardEvent(agency="NASA", naics_code="336414", value=45.0, title="Lunar lander services")

    assert match_contract_award(ContractAwardConfig(naics_codes=["3364"], keywords=["LANDER"]), event)
    assert match_contract_award(ContractAwardConfig(min_value=0), event)
    assert not match_contract_award(ContractAwardConfig(min_value=50), event)
    assert not match_contract_award(ContractAwardConfig(naics_codes=["5417"]), event)
    assert not match_contract_award(ContractAwardConfig(agencies=["Space Force"]), event)


def test_funding_round_filters() -> None:
    event = FundingRoundEvent(sector="Launch", amount=120.0, round_type="Series C")

    assert match_funding_round(FundingRoundConfig(sectors=["launch"], min_amount=100, round_types=["series c"]), event)
    assert not match_funding_round(FundingRoundConfig(min_amount=150), event)
    assert not match_funding_round(FundingRoundConfig(round_types=["Seed"]), event)


def test_weather_severity_filters() -> None:
    event = WeatherSeverityEvent(kp_index=7, alert_type="Geomagnetic Storm")

    assert match_weather_severity(WeatherSeverityConfig(min_kp_index=5), event)
    assert not match_weather_severity(WeatherSeverityConfig(min_kp_index=8), event)
    assert not match_weather_severity(WeatherSeverityConfig(alert_types=["Radio Blackout"]), event)


def test_match_trigger_validates_camel_case_payloads() -> None:
    config = {"providers": ["SpaceX"], "statusChanges": ["go"], "unknownKey": True}
    event = {"provider": "SpaceX Falcon 9", "status": "GO", "missionName": "Starlink", "pad": "SLC-40"}

    assert match_trigger(TriggerType.LAUNCH_STATUS.value, config, event)
    assert match_trigger("funding_round", {"minAmount": 10}, {"sector": "x", "amount": 12, "roundType": "Seed"})


def test_match_trigger_unknown_type_never_matches() -> None:
    assert get_trigger("satellite_conjunction") is None
    assert not match_trigger("satellite_conjunction", {}, {"anything": 1})


def test_match_trigger_rejects_invalid_event() -> None:
    with pytest.raises(ValidationError):
        match_trigger("launch_status", {}, {"status": "go"})


def test_registry_covers_all_trigger_types() -> None:
    assert set(registered_trigger_types()) >= {trigger.value for trigger in TriggerType}


def test_register_trigger_adds_new_type() -> None:
    definition = TriggerDefinition(
        trigger_type="test_always",
        config_model=RegulatoryFilingConfig,
        event_model=RegulatoryFilingEvent,
        matcher=lambda config, event: True,
    )
    register_trigger(definition, replace=True)

    assert match_trigger("test_always", {}, {"agency": "FAA", "category": "Launch"})
    assert definition.render("My rule", {}) == AlertContent(title="Alert: My rule", message='Alert rule "My rule" triggered')
    with pytest.raises(ValueError):
        register_trigger(definition)
