"""
Prediction
----------
Combines the predictions of every regional model that applies to an observation into one value, weighting each
region by how far the observation is from it. Within ``smooth`` km of a region the weight decays quadratically from 1
on the region's boundary (and inside it) to 0 at distance ``smooth``, which makes the combined surface continuous
across region borders.

Observations outside the smoothing zone of every region (usually because simplified boundaries leave small gaps) are
given to their closest region(s) with full weight.
"""

import warnings
from typing import Any, Callable

import geopandas as gpd
import numpy as np
import pandas as pd

from remapkit.distance import build_distance_matrix
from remapkit.exceptions import InvalidParameterError, NegativeStderrWarning, PredictionLengthError
from remapkit.parallel import run_parallel
from remapkit.regions import process_numbers
from remapkit.utilities.assertions import assert_points, assert_same_crs, assert_cores, check_distances
from remapkit.utilities.data import div_field_z_safe
from remapkit.utilities.timing import TimingData

MODES = ["value", "stderr"]


def smooth_weights(distances: np.ndarray, smooth: float) -> np.ndarray:
  """
  Weight of a region for observations at the given distances (all assumed to be <= smooth).

  :param distances: Distances in km to the region.
  :type distances: numpy.ndarray
  :param smooth: Smoothing distance in km for the region.
  :type smooth: float
  :returns: 1 everywhere if ``smooth`` is 0, otherwise ``((smooth - d) / smooth) ** 2``.
  :rtype: numpy.ndarray
  """
  distances = np.asarray(distances, dtype=float)
  if smooth == 0:
    return np.ones(len(distances), dtype=float)
  return ((smooth - distances) / smooth) ** 2


def apply_gap_fallback(distances: np.ndarray, smooth: np.ndarray) -> np.ndarray:
  """
  Make sure every observation has at least one region with full weight.

  For every row, the cells holding the row's minimum distance are set to 0 when that minimum is not inside the
  region's smoothing zone (``>= smooth``).

  :param distances: Matrix of distances, observations x regions, NaN where unknown.
  :type distances: numpy.ndarray
  :param smooth: Smoothing distance per region (column).
  :type smooth: numpy.ndarray
  :returns: A corrected copy of the matrix.
  :rtype: numpy.ndarray
  """
  distances = np.array(distances, dtype=float)
  known = ~np.isnan(distances)
  row_min = np.where(known, distances, np.inf).min(axis=1)
  mask = known & (distances == row_min[:, None]) & (distances >= smooth[None, :])
  distances[mask] = 0.0
  return distances


def predict_smooth(
    ensemble,
    observations: gpd.GeoDataFrame,
    smooth,
    distances: pd.DataFrame | None = None,
    cores: int = 1,
    mode: str = "value",
    backend: str = "loky",
    verbose: bool = False,
    progress: Callable[[int, int], None] | None = None,
    **predict_params
) -> np.ndarray:
  """
  Make predictions on new observations, smoothing predictions at region borders.

  If an observation is outside of all regions and smoothing distances, its closest region is used to predict.

  :param ensemble: Output of :func:`remapkit.modeling.fit_ensemble`.
  :type ensemble: remapkit.modeling.Ensemble
  :param observations: GeoDataFrame with point geometry, in the CRS of the ensemble's regions.
  :type observations: geopandas.GeoDataFrame
  :param smooth: Distance in km from a region's border over which its predictions fade out. If 0, no smoothing occurs
    unless an observation lies on the border of two or more regions. Scalar or mapping keyed by region id.
  :param distances: Optional distance matrix between ``observations`` and the ensemble's regions (computed if absent).
  :type distances: pandas.DataFrame, optional
  :param cores: Number of workers. More than 1 requires more memory.
  :type cores: int
  :param mode: "value" to combine predictions; "stderr" when the models' predict returns standard errors, to combine
    them into an upper bound (weighted average of the regional standard errors, not assuming independence).
  :type mode: str
  :param backend: joblib backend used when ``cores > 1``.
  :type backend: str
  :param verbose: If True, prints progress information.
  :type verbose: bool
  :param progress: Optional callback called as ``progress(done, total)`` while predicting.
  :type progress: callable, optional
  :param predict_params: Extra arguments passed to every regional model's ``predict``.
  :returns: One value per observation, NaN where no region applies.
  :rtype: numpy.ndarray
  """
  assert_points(observations)
  assert_same_crs(observations, ensemble.regions, "observations", "ensemble regions")
  assert_cores(cores)
  if mode not in MODES:
    raise InvalidParameterError(f"'mode' must be one of {MODES}, got '{mode}'", "mode")

  id_list = ensemble.id_list
  smooth = process_numbers(smooth, "smooth", id_list)

  timing = TimingData()

  # Find distances between the observations and each region
  if distances is None:
    timing.start("distances")
    distances = build_distance_matrix(
      observations,
      ensemble.regions,
      region_id=ensemble.region_id,
      max_dist=smooth,
      cores=cores,
      backend=backend,
      verbose=verbose
    )
    timing.stop("distances")
  else:
    # remove any extra columns
    distances = check_distances(distances, observations, id_list)

  s = smooth.to_numpy(dtype=float)
  matrix = apply_gap_fallback(distances.to_numpy(dtype=float), s)

  if verbose:
    print("Predicting...")
  timing.start("predictions")

  # only consider values within smoothing range
  indices = []
  tasks = []
  for j, _id in enumerate(id_list):
    column = matrix[:, j]
    idx = np.flatnonzero(~np.isnan(column) & (column <= s[j]))
    indices.append(idx)
    tasks.append(_RegionPredictTask(_id, ensemble.models[_id], observations.iloc[idx], predict_params))

  preds_list = run_parallel(_predict_region, tasks, cores=cores, backend=backend, progress=progress)

  # get weighted sum
  output = np.zeros(len(observations), dtype=float)
  weightsum = np.zeros(len(observations), dtype=float)
  for j, _id in enumerate(id_list):
    idx = indices[j]
    preds = preds_list[j]
    if len(preds) != len(idx):
      raise PredictionLengthError(
        f"Model for region {_id} returned {len(preds)} values for {len(idx)} observations."
      )
    if len(idx) == 0:
      continue

    weight = smooth_weights(matrix[idx, j], s[j])

    if mode == "stderr":
      negative = preds < 0
      if negative.any():
        warnings.warn(
          f"{negative.sum()} standard error values less than 0 returned for region {_id}. "
          f"These values will be assumed to be 0.",
          NegativeStderrWarning,
          stacklevel=2
        )
        preds = np.where(negative, 0.0, preds)

    output[idx] += weight * preds
    weightsum[idx] += weight

  # get weighted average, NaN where no region applies
  output = div_field_z_safe(output, weightsum)
  timing.stop("predictions")

  if verbose:
    if mode == "stderr":
      print("Upper bound for standard error calculated at each location.")
      print("Reminder: make sure that the regional models' predict returns standard errors in this mode.")
    timing.print()

  return output


class _RegionPredictTask:

  def __init__(self, region: str, model: Any, data: gpd.GeoDataFrame, predict_params: dict):
    self.region = region
    self.model = model
    self.data = data
    self.predict_params = predict_params


def _predict_region(task: _RegionPredictTask) -> np.ndarray:
  if len(task.data) == 0:
    return np.array([], dtype=float)
  preds = task.model.predict(task.data, **task.predict_params)
  return np.asarray(preds, dtype=float).ravel()
