"""Observation station fallback: first station with a temperature wins."""

import logging

from weather_data.config.defaults import NUMBER_OF_OBS_STATIONS_TO_TRY
from weather_data.ingest.fetch_client import FetchClient
from weather_data.models.errors import FetchCancelledError, NoValidStationError, UpstreamError
from weather_data.models.weather import Grid, Observation, SelectedObservation, Station

logger = logging.getLogger(__name__)


class StationSelector:
    def __init__(self, client: FetchClient, max_attempts: int = NUMBER_OF_OBS_STATIONS_TO_TRY):
        self.client = client
        self.max_attempts = max_attempts

    def candidate_stations(self, grid: Grid) -> list[Station]:
        """Stations for a grid cell, in the upstream (proximity) order."""
        payload = self.client.fetch(f"/gridpoints/{grid.path}/stations")
        return [Station.from_feature(f) for f in payload.get("features", [])]

    def latest_observation(self, station: Station) -> Observation | None:
        payload = self.client.fetch(
            f"/stations/{station.identifier}/observations?limit=1"
        )
        features = payload.get("features") or []
        if not features:
            return None
        return Observation.from_feature(features[0])

    def select_observation(self, grid: Grid) -> SelectedObservation:
        """Walk up to ``max_attempts`` candidates until one reports a temperature.

        Raises NoValidStationError carrying the last examined observation
        when none do; callers treat that as "no data".
        """
        stations = self.candidate_stations(grid)
        bound = min(len(stations), self.max_attempts)

        last_observation: Observation | None = None
        index = -1
        for index in range(bound):
            station = stations[index]
            try:
                observation = self.latest_observation(station)
            except FetchCancelledError:
                raise
            except UpstreamError as e:
                logger.warning(
                    "Observation fetch failed for station %s (index %d): %s",
                    station.identifier, index, e,
                )
                continue

            if observation is None:
                logger.info("Station %s has no observations", station.identifier)
                continue

            last_observation = observation
            if observation.is_valid:
                if index > 0:
                    logger.info(
                        "Using fallback station %s at index %d for %s",
                        station.identifier, index, grid.path,
                    )
                return SelectedObservation(
                    station=station, observation=observation, station_index=index
                )
            logger.info(
                "Station %s has no temperature, trying next", station.identifier
            )

        raise NoValidStationError(
            f"No valid observation among {bound} of {len(stations)} stations for {grid.path}",
            last_observation=last_observation,
            station_index=index,
        )
