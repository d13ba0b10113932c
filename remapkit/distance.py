"""
Distance
--------
Distances in kilometers between every observation and every region boundary (0 inside a region).

Exact point-to-polygon distance is the expensive part, proportional to observations x regions x boundary complexity.
When a cutoff (``max_dist``) is given, each region is first buffered outward by the cutoff and only observations the
buffer covers get an exact distance; every other cell is left unknown (NaN). Observations that end up outside every
buffer get exact distances to all regions, so no row is ever entirely unknown.
"""

import math
from typing import Callable

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely

from remapkit.parallel import run_parallel
from remapkit.regions import process_regions, process_numbers, get_id_list
from remapkit.utilities.assertions import assert_points, assert_same_crs
from remapkit.utilities.geometry import is_geographic, get_km_per_unit, km_to_degrees, project_to_equal_distance
from remapkit.utilities.timing import TimingData

POLE_LATITUDE = 90.0

# Buffers approximate arcs with straight segments that cut inside the true curve; growing the radius by
# 1/cos(half the segment angle) makes the approximation enclose every point within the cutoff.
BUFFER_QUAD_SEGS = 8
BUFFER_INFLATION = 1.0 / math.cos(math.pi / (4 * BUFFER_QUAD_SEGS))


def build_distance_matrix(
    observations: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    region_id: str | None = None,
    max_dist=None,
    cores: int = 1,
    backend: str = "loky",
    verbose: bool = False,
    progress: Callable[[int, int], None] | None = None
) -> pd.DataFrame:
  """
  Find distances in km between observations (points) and regions (polygons).

  :param observations: GeoDataFrame with point geometry.
  :type observations: geopandas.GeoDataFrame
  :param regions: GeoDataFrame with polygon or multipolygon geometry, in the same CRS as ``observations``.
  :type regions: geopandas.GeoDataFrame
  :param region_id: Optional name of the column in ``regions`` holding the region id. If None, each row is its own
    region, identified by its row position.
  :type region_id: str, optional
  :param max_dist: Optional maximum distance in km needed by later calculations (scalar or per-region mapping). When
    given, distances beyond the cutoff may be left as NaN. Use the largest ``smooth`` when predicting.
  :param cores: Number of workers; each region is one unit of work.
  :type cores: int
  :param backend: joblib backend used when ``cores > 1``.
  :type backend: str
  :param verbose: If True, prints progress information.
  :type verbose: bool
  :param progress: Optional callback called as ``progress(done, total)``.
  :type progress: callable, optional
  :returns: Matrix with one row per observation (same index and order) and one column per region id, in km.
  :rtype: pandas.DataFrame
  :raises InvalidGeometryError: If observations are not points or regions are not polygons.
  :raises GeometryMismatchError: If observations and regions do not share a CRS.
  :raises EmptyRegionsError: If there are no regions.
  :raises CRSUnitsError: If the CRS is missing or its unit can't be converted to km.
  """
  assert_points(observations)
  regions = process_regions(regions, region_id)
  assert_same_crs(observations, regions)
  id_list = get_id_list(regions)

  if max_dist is not None:
    max_dist = process_numbers(max_dist, "max_dist", id_list)

  if len(observations) == 0:
    return pd.DataFrame(np.zeros((0, len(id_list))), index=observations.index, columns=id_list)

  timing = TimingData()
  timing.start("distances")

  geographic = is_geographic(observations.crs)

  if geographic:
    # Exact distances are measured in a local equidistant projection (meters)
    obs_exact, regions_exact = project_to_equal_distance(observations, regions)
    km_per_unit = 0.001
  else:
    obs_exact, regions_exact = observations, regions
    km_per_unit = get_km_per_unit(observations.crs)

  points_native = observations.geometry.to_numpy()
  points_exact = obs_exact.geometry.to_numpy()
  geoms_native = regions.geometry.to_numpy()
  geoms_exact = regions_exact.geometry.to_numpy()

  cutoffs = None
  if max_dist is not None:
    cutoffs = _get_native_cutoffs(observations, regions, max_dist, geographic, km_per_unit, verbose)

  if cutoffs is None:
    if verbose:
      print(f"Finding distances to {len(id_list)} regions...")
    tasks = [
      _DistanceTask(None, points_exact, None, geoms_exact[j], None, km_per_unit)
      for j in range(len(id_list))
    ]
  else:
    if verbose:
      print(f"Using buffered regions to find observations within max_dist of {len(id_list)} regions...")
    xs = shapely.get_x(points_native)
    ys = shapely.get_y(points_native)
    tasks = [
      _DistanceTask((points_native, xs, ys), points_exact, geoms_native[j], geoms_exact[j], cutoffs[j], km_per_unit)
      for j in range(len(id_list))
    ]

  columns = run_parallel(_region_distances, tasks, cores=cores, backend=backend, progress=progress)
  matrix = np.column_stack(columns).astype(float)

  if cutoffs is not None:
    # For any observation not within max_dist of any region, find all distances
    unknown = np.isnan(matrix).all(axis=1)
    if unknown.any():
      if verbose:
        print(f"--> {unknown.sum()} observations outside every buffer, finding all distances for them...")
      subset = points_exact[unknown]
      tasks = [
        _DistanceTask(None, subset, None, geoms_exact[j], None, km_per_unit)
        for j in range(len(id_list))
      ]
      columns = run_parallel(_region_distances, tasks, cores=cores, backend=backend)
      matrix[unknown, :] = np.column_stack(columns)

  timing.stop("distances")
  if verbose:
    timing.print()

  return pd.DataFrame(matrix, index=observations.index, columns=id_list)


def _get_native_cutoffs(
    observations: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    max_dist: pd.Series,
    geographic: bool,
    km_per_unit: float,
    verbose: bool = False
) -> np.ndarray | None:
  """
  Convert per-region cutoffs from km to the native units of the data.

  Returns None when pruning is unsafe (geographic data whose buffered regions would come within the cutoff of a
  pole), in which case the caller computes every distance exactly.
  """
  km = max_dist.to_numpy(dtype=float)

  if not geographic:
    return km / km_per_unit

  # Reference the most poleward observation: a degree of longitude is shortest there, so the angular radius is largest
  ref_lat = float(np.abs(shapely.get_y(observations.geometry.to_numpy())).max())
  degrees = np.array([km_to_degrees(d, ref_lat) for d in km])

  bounds = regions.geometry.bounds
  near_pole = (
    ~np.isfinite(degrees) |
    (bounds["maxy"].to_numpy() + degrees >= POLE_LATITUDE) |
    (bounds["miny"].to_numpy() - degrees <= -POLE_LATITUDE)
  )
  if near_pole.any():
    if verbose:
      print("--> max_dist reaches too close to a pole for flat-earth pruning, finding all distances instead")
    return None

  return degrees


class _DistanceTask:
  """One region's worth of distance work."""

  def __init__(self, native, points_exact, geom_native, geom_exact, cutoff, km_per_unit):
    self.native = native
    self.points_exact = points_exact
    self.geom_native = geom_native
    self.geom_exact = geom_exact
    self.cutoff = cutoff
    self.km_per_unit = km_per_unit


def _region_distances(task: _DistanceTask) -> np.ndarray:
  """Distances in km from each point to one region; NaN where the point is outside the region's buffer."""
  if task.cutoff is None:
    return shapely.distance(task.geom_exact, task.points_exact) * task.km_per_unit

  points_native, xs, ys = task.native
  out = np.full(len(task.points_exact), np.nan)

  buffered = shapely.buffer(task.geom_native, task.cutoff * BUFFER_INFLATION, quad_segs=BUFFER_QUAD_SEGS)

  # Cheap bounding box test first, then exact containment in the buffer for what's left
  minx, miny, maxx, maxy = shapely.bounds(buffered)
  in_box = (xs >= minx) & (xs <= maxx) & (ys >= miny) & (ys <= maxy)
  if not in_box.any():
    return out

  shapely.prepare(buffered)
  candidates = np.zeros(len(out), dtype=bool)
  candidates[in_box] = shapely.covers(buffered, points_native[in_box])
  if candidates.any():
    out[candidates] = shapely.distance(task.geom_exact, task.points_exact[candidates]) * task.km_per_unit
  return out
