"""Real and synthetic schedule sources behind one interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from commuter_api.logging import get_logger
from commuter_api.services.schedule.instantiation import ScheduleEngine
from commuter_api.services.schedule.synthetic import SyntheticScheduleGenerator

if TYPE_CHECKING:
    from datetime import datetime

    from commuter_api.models.delays import ReconciledTrain
    from commuter_api.services.gtfs_static.store import TimetableStore
    from commuter_api.services.reconciliation.engine import DelayReconciler

logger = get_logger(__name__)


class ScheduleSource(Protocol):
    is_synthetic: bool

    async def trains(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime,
        reconciler: DelayReconciler,
    ) -> list[ReconciledTrain]:
        """Upcoming reconciled trains; empty when nothing is available."""
        ...


class GtfsScheduleSource:
    """Trains instantiated from the static GTFS timetable."""

    is_synthetic = False

    def __init__(self, store: TimetableStore, engine: ScheduleEngine | None = None) -> None:
        self.store = store
        self.engine = engine or ScheduleEngine(store)

    async def trains(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime,
        reconciler: DelayReconciler,
    ) -> list[ReconciledTrain]:
        if not await self.store.ensure_loaded():
            logger.warning("Timetable unavailable")
            return []
        return self.engine.scheduled_trains(origin_id, destination_id, as_of, reconciler)


class SyntheticScheduleSource:
    """Placeholder trains used when the timetable yields nothing."""

    is_synthetic = True

    def __init__(self, generator: SyntheticScheduleGenerator | None = None) -> None:
        self.generator = generator or SyntheticScheduleGenerator()

    async def trains(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime,
        reconciler: DelayReconciler,
    ) -> list[ReconciledTrain]:
        candidates = self.generator.generate(origin_id, destination_id, as_of)
        return reconciler.reconcile(candidates)
