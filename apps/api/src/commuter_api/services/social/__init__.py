"""Social timeline delay scraping and parsing."""

from commuter_api.services.social.parser import SocialTrainDelay, latest_delays_by_train, parse_post
from commuter_api.services.social.scraper import (
    BrowserTimelineFetcher,
    HttpTimelineFetcher,
    SocialFeedClient,
    SocialPost,
    StaticTimelineFetcher,
)

__all__ = [
    "BrowserTimelineFetcher",
    "HttpTimelineFetcher",
    "SocialFeedClient",
    "SocialPost",
    "SocialTrainDelay",
    "StaticTimelineFetcher",
    "latest_delays_by_train",
    "parse_post",
]
