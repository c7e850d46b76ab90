"""Caltrain.com text alert scraping and parsing."""

from commuter_api.services.alerts.parser import (
    CaltrainAlert,
    TrainDelay,
    extract_train_delays,
    get_system_wide_delays,
    parse_alert,
    parse_alerts_from_text,
)
from commuter_api.services.alerts.scraper import (
    BrowserAlertPageFetcher,
    HttpAlertPageFetcher,
    StaticAlertTextFetcher,
    TextAlertsClient,
)

__all__ = [
    "BrowserAlertPageFetcher",
    "CaltrainAlert",
    "HttpAlertPageFetcher",
    "StaticAlertTextFetcher",
    "TextAlertsClient",
    "TrainDelay",
    "extract_train_delays",
    "get_system_wide_delays",
    "parse_alert",
    "parse_alerts_from_text",
]
