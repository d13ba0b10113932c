import geopandas as gpd
import numpy as np
import pandas as pd
from pyproj import CRS

from remapkit.exceptions import InvalidGeometryError, GeometryMismatchError, InvalidParameterError, \
  EmptyRegionsError, MissingColumnError
from remapkit.utilities.geometry import is_polygonal


def assert_points(data: gpd.GeoDataFrame, name: str = "observations"):
  if not isinstance(data, gpd.GeoDataFrame):
    raise InvalidGeometryError(f"'{name}' must be a GeoDataFrame, see geopandas.")
  if len(data) == 0:
    return
  if data.geometry.isna().any():
    raise InvalidGeometryError(f"'{name}' contains missing geometries.")
  types = data.geometry.geom_type
  if not types.eq("Point").all():
    bad = sorted(types[~types.eq("Point")].unique().tolist())
    raise InvalidGeometryError(f"'{name}' must have point geometry, found: {bad}")


def assert_polygons(regions: gpd.GeoDataFrame, name: str = "regions"):
  if not isinstance(regions, gpd.GeoDataFrame):
    raise InvalidGeometryError(f"'{name}' must be a GeoDataFrame, see geopandas.")
  if len(regions) == 0:
    raise EmptyRegionsError(f"'{name}' must have at least 1 row.")
  valid = regions.geometry.apply(is_polygonal)
  if not valid.all():
    bad_rows = np.flatnonzero(~valid.to_numpy()).tolist()
    raise InvalidGeometryError(f"'{name}' must have polygon or multipolygon geometry, bad rows: {bad_rows}")


def assert_same_crs(a: gpd.GeoDataFrame, b: gpd.GeoDataFrame, a_name: str = "observations", b_name: str = "regions"):
  crs_a = None if a.crs is None else CRS.from_user_input(a.crs)
  crs_b = None if b.crs is None else CRS.from_user_input(b.crs)
  if crs_a != crs_b:
    raise GeometryMismatchError(
      f"{a_name} and {b_name} must have the same CRS (got {crs_a} and {crs_b}). See GeoDataFrame.to_crs() for help."
    )


def assert_cores(cores: int):
  if isinstance(cores, bool) or not isinstance(cores, (int, np.integer)) or cores < 1:
    raise InvalidParameterError(f"'cores' must be an integer greater than 0, got {cores!r}", "cores")


def assert_min_n(min_n: int):
  if isinstance(min_n, bool) or not isinstance(min_n, (int, np.integer)) or min_n < 1:
    raise InvalidParameterError(f"'min_n' needs to be an integer >= 1, got {min_n!r}", "min_n")


def check_distances(distances: pd.DataFrame, data: gpd.GeoDataFrame, id_list: list[str]) -> pd.DataFrame:
  """
  Validate a precomputed distance matrix against the observations and region ids it will be used with.

  :param distances: Distance matrix from :func:`remapkit.distance.build_distance_matrix`.
  :type distances: pandas.DataFrame
  :param data: Observations the matrix was built for.
  :type data: geopandas.GeoDataFrame
  :param id_list: Region ids that must be present as columns.
  :type id_list: list[str]
  :returns: The matrix restricted to ``id_list`` (in that order), re-indexed like ``data``.
  :rtype: pandas.DataFrame
  :raises GeometryMismatchError: If the row count does not match the observations.
  :raises MissingColumnError: If a region id has no column.
  """
  if not isinstance(distances, pd.DataFrame):
    distances = pd.DataFrame(np.asarray(distances, dtype=float))
  if len(distances) != len(data):
    raise GeometryMismatchError(
      f"Rows in data ({len(data)}) must be same length as rows in distances ({len(distances)})."
    )
  distances = distances.copy()
  distances.columns = [str(c) for c in distances.columns]
  missing = [_id for _id in id_list if _id not in distances.columns]
  if len(missing) > 0:
    raise MissingColumnError(f"distances is missing columns for regions: {missing}", missing[0])
  distances = distances[id_list].astype(float)
  distances.index = data.index
  return distances


def matrices_are_equal(a: pd.DataFrame, b: pd.DataFrame, epsilon: float = 1e-6, ignore_missing: bool = False) -> bool:
  """
  Compare two distance matrices cell by cell, treating NaN as equal to NaN.

  :param a: First matrix.
  :param b: Second matrix.
  :param epsilon: Absolute tolerance.
  :param ignore_missing: If True, only compare cells known (non-NaN) in ``a``.
  """
  if list(a.columns) != list(b.columns):
    print(f"Columns do not match: A={list(a.columns)}, B={list(b.columns)}")
    return False
  if not a.index.equals(b.index):
    print("Indices do not match")
    return False
  va = a.to_numpy(dtype=float)
  vb = b.to_numpy(dtype=float)
  known_a = ~np.isnan(va)
  known_b = ~np.isnan(vb)
  if ignore_missing:
    mask = known_a
  else:
    if not np.array_equal(known_a, known_b):
      print("Missing cells do not match")
      return False
    mask = known_a
  if not np.all(known_b[mask]):
    return False
  diff = np.abs(va[mask] - vb[mask])
  if len(diff) > 0 and diff.max() >= epsilon:
    print(f"Largest difference: {diff.max()}")
    return False
  return True
