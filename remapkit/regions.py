"""
Regions
-------
Normalization of region polygons and of the per-region weighting parameters (buffer, smooth, max_dist).

After :func:`process_regions` every region has exactly one row, a unique string id in the first column and a single
(possibly unioned) polygonal geometry.
"""

from collections.abc import Mapping

import geopandas as gpd
import numpy as np
import pandas as pd
import shapely

from remapkit.exceptions import MissingColumnError, InvalidParameterError
from remapkit.utilities.assertions import assert_polygons

DEFAULT_REGION_ID = "region"


def process_regions(regions: gpd.GeoDataFrame, region_id: str | None = None) -> gpd.GeoDataFrame:
  """
  Normalize regions so that each unique region id makes up exactly one row.

  If ``region_id`` is None, every row is its own region and its id is its 0-based row position. Otherwise rows that
  share an id are unioned into one geometry. Ids are converted to strings and kept in first-seen order.

  :param regions: GeoDataFrame with polygon or multipolygon geometry.
  :type regions: geopandas.GeoDataFrame
  :param region_id: Optional name of the column holding the region id.
  :type region_id: str, optional
  :returns: GeoDataFrame with columns ``[region_id, "geometry"]`` and the input CRS.
  :rtype: geopandas.GeoDataFrame
  :raises InvalidGeometryError: If any geometry is missing or not polygonal.
  :raises EmptyRegionsError: If there are no regions.
  :raises MissingColumnError: If ``region_id`` is not a column of ``regions``.
  """
  assert_polygons(regions)

  geoms = regions.geometry.to_numpy()

  if region_id is None:
    region_id = DEFAULT_REGION_ID
    ids = np.array([str(i) for i in range(len(regions))], dtype=object)
  else:
    if region_id not in regions.columns:
      raise MissingColumnError(f"'region_id' ({region_id}) must be a column name of 'regions'", region_id)
    ids = regions[region_id].astype(str).to_numpy()

  id_list = list(pd.unique(ids))

  if len(id_list) < len(regions):
    # More than one row per id: combine the geometries for each unique id
    new_geoms = []
    for _id in id_list:
      new_geoms.append(shapely.union_all(geoms[ids == _id]))
    geoms = np.array(new_geoms, dtype=object)

  return gpd.GeoDataFrame(
    {region_id: id_list},
    geometry=gpd.GeoSeries(geoms, crs=regions.crs),
    crs=regions.crs
  )


def get_id_list(regions: gpd.GeoDataFrame) -> list[str]:
  """Region ids of a normalized regions frame, in order."""
  return [str(_id) for _id in regions.iloc[:, 0].tolist()]


def process_numbers(x, name: str, id_list: list[str]) -> pd.Series:
  """
  Normalize a per-region distance parameter into one non-negative float per region id.

  ``x`` may be a scalar (applied to every region), a mapping or Series keyed by region id, or, when the region ids
  are implicit row positions, a list aligned with the regions.

  :param x: The parameter value(s), in kilometers.
  :param name: Parameter name used in error messages (e.g. "buffer", "smooth").
  :type name: str
  :param id_list: Region ids, in order.
  :type id_list: list[str]
  :returns: Float Series indexed by ``id_list``.
  :rtype: pandas.Series
  :raises InvalidParameterError: If any value is negative, NaN or non-numeric, or keys don't match the region ids.
  """
  if x is None:
    raise InvalidParameterError(f"'{name}' must be a number >= 0.", name)

  if isinstance(x, (pd.Series, Mapping)):
    values = {str(k): v for k, v in dict(x).items()}
    unknown = [k for k in values if k not in id_list]
    if len(unknown) > 0:
      raise InvalidParameterError(
        f"'{name}' keys must equal unique values in the region id column of 'regions', unknown: {unknown}", name
      )
    missing = [_id for _id in id_list if _id not in values]
    if len(missing) > 0:
      raise InvalidParameterError(f"'{name}' has no value for regions: {missing}", name)
    values = [values[_id] for _id in id_list]
  elif isinstance(x, (list, tuple, np.ndarray)):
    values = list(np.asarray(x).ravel())
    if len(values) == 1:
      values = values * len(id_list)
    elif len(values) != len(id_list) or id_list != [str(i) for i in range(len(id_list))]:
      raise InvalidParameterError(
        f"'{name}' given as a list must have one value per region and regions must be identified by row position; "
        f"use a dict keyed by region id instead.", name
      )
  else:
    values = [x] * len(id_list)

  try:
    if any(isinstance(v, (bool, np.bool_, str)) for v in values):
      raise TypeError(name)
    values = np.asarray(values, dtype=float)
  except (TypeError, ValueError):
    raise InvalidParameterError(f"'{name}' must be a number >= 0.", name)

  if np.isnan(values).any() or (values < 0).any():
    raise InvalidParameterError(f"'{name}' must be a number >= 0.", name)

  return pd.Series(values, index=id_list, dtype=float, name=name)
