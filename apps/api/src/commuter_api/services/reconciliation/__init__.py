"""Delay reconciliation across GTFS-RT, text alerts and the social feed."""

from commuter_api.services.reconciliation.engine import (
    DelayContext,
    DelayReconciler,
    DelayResolution,
    DelaySource,
    SyntheticDelaySource,
)

__all__ = [
    "DelayContext",
    "DelayReconciler",
    "DelayResolution",
    "DelaySource",
    "SyntheticDelaySource",
]
