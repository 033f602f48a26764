"""Per-request unit of work: correlation id, cache and memoized geometry."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from weather_data.ingest.request_cache import RequestCache
from weather_data.models.common import new_response_id
from weather_data.models.weather import Grid, Point

logger = logging.getLogger(__name__)


class UnitOfWorkState(StrEnum):
    INIT = "INIT"
    GRID_RESOLVED = "GRID_RESOLVED"
    STATION_SELECTED = "STATION_SELECTED"
    FORMATTED = "FORMATTED"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class RequestContext:
    """Everything owned by one logical request. Never share across requests."""

    response_id: str = field(default_factory=new_response_id)
    cache: RequestCache = field(default_factory=RequestCache)
    grid: Grid | None = None
    grid_geometry: list[Point] | None = None
    reference_point: Point | None = None
    state: UnitOfWorkState = UnitOfWorkState.INIT
    history: list[UnitOfWorkState] = field(default_factory=list)

    def transition(self, state: UnitOfWorkState) -> None:
        logger.debug("[%s] %s -> %s", self.response_id, self.state, state)
        self.history.append(self.state)
        self.state = state

    def use_grid(self, grid: Grid) -> None:
        """Point the context at ``grid``, dropping state stashed for another cell."""
        if self.grid == grid:
            return
        if self.grid is not None:
            self.reference_point = None
        self.grid = grid
        self.grid_geometry = None
