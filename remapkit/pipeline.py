"""
Pipeline
---------
Settings-driven entry points. Every parameter of the core operations that is a matter of configuration (buffer,
min_n, smooth, max_dist, cores, backend, mode) is read from a settings dictionary, see
:func:`remapkit.utilities.settings.load_settings`.

This module imports from other modules, but no other modules import from it.
"""

import geopandas as gpd
import numpy as np
import pandas as pd

from remapkit.distance import build_distance_matrix
from remapkit.modeling import Ensemble, fit_ensemble
from remapkit.prediction import predict_smooth
from remapkit.utilities.settings import get_buffer, get_min_n, get_smooth, get_max_dist, get_cores, get_backend, \
  get_mode


def distances_from_settings(
    observations: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    settings: dict,
    region_id: str | None = None,
    verbose: bool = False
) -> pd.DataFrame:
  return build_distance_matrix(
    observations,
    regions,
    region_id=region_id,
    max_dist=get_max_dist(settings),
    cores=get_cores(settings),
    backend=get_backend(settings),
    verbose=verbose
  )


def fit_from_settings(
    observations: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    fit_fn,
    settings: dict,
    region_id: str | None = None,
    distances: pd.DataFrame | None = None,
    verbose: bool = False,
    **fit_params
) -> Ensemble:
  """
  Build an ensemble using buffer, min_n and parallel settings from ``settings``.

  :param observations: GeoDataFrame with point geometry.
  :param regions: GeoDataFrame with polygon geometry.
  :param fit_fn: Fit function or RegionalModel template, see :func:`remapkit.modeling.fit_ensemble`.
  :param settings: Settings dictionary.
  :type settings: dict
  :param region_id: Optional region id column.
  :param distances: Optional precomputed distance matrix.
  :param verbose: If True, prints progress information.
  :returns: The fitted ensemble.
  :rtype: Ensemble
  """
  return fit_ensemble(
    observations,
    regions,
    fit_fn,
    buffer=get_buffer(settings),
    min_n=get_min_n(settings),
    region_id=region_id,
    distances=distances,
    cores=get_cores(settings),
    backend=get_backend(settings),
    verbose=verbose,
    **fit_params
  )


def predict_from_settings(
    ensemble: Ensemble,
    observations: gpd.GeoDataFrame,
    settings: dict,
    distances: pd.DataFrame | None = None,
    verbose: bool = False,
    **predict_params
) -> np.ndarray:
  """
  Predict with an ensemble using smooth, mode and parallel settings from ``settings``.

  :returns: One value per observation.
  :rtype: numpy.ndarray
  """
  return predict_smooth(
    ensemble,
    observations,
    smooth=get_smooth(settings),
    distances=distances,
    cores=get_cores(settings),
    mode=get_mode(settings),
    backend=get_backend(settings),
    verbose=verbose,
    **predict_params
  )
