"""Distance diagnostics between a chosen observation and its grid cell."""

from collections.abc import Sequence

from weather_data.geo.geometry import distance_sphere, nearest_vertex, point_in_polygon
from weather_data.models.errors import GeometryUnavailableError
from weather_data.models.weather import DistanceInfo, Observation, Point


def get_obs_distance_info(
    reference_point: Point | None,
    observation: Observation,
    grid_geometry: Sequence[Point],
    index: int = 0,
) -> DistanceInfo:
    """Measure how far the observation is from where the user asked about.

    Distance is to the reference point when there is one, otherwise to the
    grid-cell vertex nearest the observation.
    """
    if observation.point is None:
        raise GeometryUnavailableError(
            f"Observation from {observation.station} has no coordinates"
        )
    if reference_point is not None:
        source = reference_point
    else:
        if not grid_geometry:
            raise GeometryUnavailableError("Grid cell geometry is empty")
        source = nearest_vertex(observation.point, grid_geometry)

    return DistanceInfo(
        distance=distance_sphere(observation.point, source),
        within_grid_cell=point_in_polygon(observation.point, grid_geometry),
        uses_reference_point=reference_point is not None,
        obs_point=observation.point,
        obs_station=observation.station,
        station_index=index,
    )
