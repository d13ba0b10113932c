"""
Modeling
--------
Builds a separate model for each region and combines them into an :class:`Ensemble`, which predicts on new data with
predictions smoothed across region borders (see :mod:`remapkit.prediction`).

If the model fails for a region, a warning is given and the remaining regions are still modeled. The methodology is
described in Wagstaff and Bean (2023), "remap: Regionalized Models with Spatially Smooth Predictions",
doi:10.32614/RJ-2023-004.
"""

import copy
import warnings
from typing import Any, Callable

import geopandas as gpd
import numpy as np
import pandas as pd

from remapkit.distance import build_distance_matrix
from remapkit.exceptions import AllModelsFailedError, InvalidParameterError, RegionFitFailedWarning
from remapkit.parallel import run_parallel
from remapkit.prediction import predict_smooth
from remapkit.regions import process_regions, process_numbers, get_id_list
from remapkit.utilities.assertions import assert_points, assert_same_crs, assert_min_n, assert_cores, check_distances
from remapkit.utilities.modeling import RegionalModel
from remapkit.utilities.timing import TimingData


class Ensemble:
  """
  A set of regional models together with the regions they were built for.

  Attributes:
      models (dict[str, Any]): Fitted model per region id, in region order. Regions whose fit failed are absent.
      regions (geopandas.GeoDataFrame): Normalized regions (id column first, then geometry) for the regions in
        ``models``, in the same order.
      region_id (str): Name of the region id column.
      params (dict): Parameters the ensemble was built with.
      failed (dict[str, str]): Error text for every region whose fit failed.
  """

  def __init__(
      self,
      models: dict[str, Any],
      regions: gpd.GeoDataFrame,
      region_id: str,
      params: dict | None = None,
      failed: dict[str, str] | None = None
  ):
    self.models = models
    self.regions = regions
    self.region_id = region_id
    self.params = params or {}
    self.failed = failed or {}

  @property
  def id_list(self) -> list[str]:
    return list(self.models.keys())

  @property
  def crs(self):
    return self.regions.crs

  def __len__(self):
    return len(self.models)

  def __repr__(self):
    return f"remap model with {len(self.models)} regional models"

  def predict(self, observations: gpd.GeoDataFrame, smooth, **kwargs) -> np.ndarray:
    """
    Predict on new observations with predictions smoothed at region borders.

    Thin wrapper around :func:`remapkit.prediction.predict_smooth`; see it for the full list of arguments.
    """
    return predict_smooth(self, observations, smooth, **kwargs)

  def summary(self) -> str:
    """
    Describe the ensemble: classes of the regional models, CRS and bounding box of the regions.

    :returns: A multi-line description.
    :rtype: str
    """
    classes = sorted({type(m).__name__ for m in self.models.values()})
    minx, miny, maxx, maxy = self.regions.total_bounds
    crs = self.regions.crs
    crs_name = crs.to_string() if crs is not None else "None"
    lines = [
      "Regional models:",
      f" {len(self.models)} regional models of class(es) {', '.join(classes)}",
    ]
    if len(self.failed) > 0:
      lines.append(f" {len(self.failed)} regions failed to fit: {', '.join(self.failed.keys())}")
    lines += [
      "",
      "Regions:",
      f" Regions have CRS {crs_name} with:",
      f" xmin = {minx}",
      f" ymin = {miny}",
      f" xmax = {maxx}",
      f" ymax = {maxy}",
    ]
    return "\n".join(lines)


def select_training_indices(distances: np.ndarray, buffer: float, min_n: int) -> np.ndarray:
  """
  Positions of the observations used to build one region's model.

  Every observation within ``buffer`` km of the region is used. If that gives fewer than ``min_n`` observations, the
  ``min_n`` closest observations are used instead (ties broken by input order, unknown distances last).

  :param distances: Distances in km from every observation to the region (NaN where unknown).
  :type distances: numpy.ndarray
  :param buffer: Buffer distance in km.
  :type buffer: float
  :param min_n: Minimum number of observations.
  :type min_n: int
  :returns: Sorted positions into the observations.
  :rtype: numpy.ndarray
  """
  distances = np.asarray(distances, dtype=float)
  indices = np.flatnonzero(distances <= buffer)
  if len(indices) < min_n:
    order = np.argsort(distances, kind="stable")
    indices = np.sort(order[:min_n])
  return indices


def fit_ensemble(
    observations: gpd.GeoDataFrame,
    regions: gpd.GeoDataFrame,
    fit_fn: Callable[..., Any] | RegionalModel,
    buffer,
    min_n: int = 1,
    region_id: str | None = None,
    distances: pd.DataFrame | None = None,
    cores: int = 1,
    backend: str = "loky",
    verbose: bool = False,
    progress: Callable[[int, int], None] | None = None,
    **fit_params
) -> Ensemble:
  """
  Build separate models for mapping multiple regions.

  :param observations: GeoDataFrame with point geometry, holding whatever fields ``fit_fn`` needs.
  :type observations: geopandas.GeoDataFrame
  :param regions: GeoDataFrame with polygon or multipolygon geometry.
  :type regions: geopandas.GeoDataFrame
  :param fit_fn: A function that takes a subset of ``observations`` (plus ``fit_params``) and returns a model with a
    ``predict(df, **params)`` method, or a :class:`RegionalModel` template that is copied and fitted per region.
  :param buffer: Length in km of the buffer zone around each region where observations are included in the data used
    to build that region's model. Scalar or mapping keyed by region id.
  :param min_n: Minimum number of observations per model. If there are not enough observations in a region and its
    buffer, the closest ``min_n`` observations are used.
  :type min_n: int
  :param region_id: Optional name of the column in ``regions`` with the region id. If None, each row is a region.
  :type region_id: str, optional
  :param distances: Optional distance matrix from :func:`remapkit.distance.build_distance_matrix`. Unless you know
    there are ``min_n`` observations within the cutoff of every region, build it without ``max_dist``.
  :type distances: pandas.DataFrame, optional
  :param cores: Number of workers. More than 1 requires more memory.
  :type cores: int
  :param backend: joblib backend used when ``cores > 1``.
  :type backend: str
  :param verbose: If True, prints progress information.
  :type verbose: bool
  :param progress: Optional callback called as ``progress(done, total)`` while building models.
  :type progress: callable, optional
  :param fit_params: Extra arguments passed to ``fit_fn``.
  :returns: The fitted ensemble.
  :rtype: Ensemble
  :raises AllModelsFailedError: If the fit failed in every region.
  """
  assert_points(observations)
  regions = process_regions(regions, region_id)
  region_id = regions.columns[0]
  assert_same_crs(observations, regions)
  id_list = get_id_list(regions)

  buffer = process_numbers(buffer, "buffer", id_list)
  assert_min_n(min_n)
  assert_cores(cores)
  if not (isinstance(fit_fn, RegionalModel) or callable(fit_fn)):
    raise InvalidParameterError("'fit_fn' must be callable or a RegionalModel", "fit_fn")

  timing = TimingData()

  # Find distances between the observations and each region
  if distances is None:
    timing.start("distances")
    distances = build_distance_matrix(
      observations,
      regions,
      region_id=region_id,
      cores=cores,
      backend=backend,
      verbose=verbose
    )
    timing.stop("distances")
  else:
    distances = check_distances(distances, observations, id_list)

  if verbose:
    print("Building models...")

  timing.start("models")
  tasks = []
  for _id in id_list:
    indices = select_training_indices(distances[_id].to_numpy(), buffer[_id], min_n)
    if verbose:
      print(f"--> region {_id}: {len(indices)} observations")
    tasks.append(_RegionFitTask(_id, observations.iloc[indices], fit_fn, fit_params))

  results = run_parallel(_fit_region, tasks, cores=cores, backend=backend, progress=progress)
  timing.stop("models")

  models = {}
  failed = {}
  for _id, (model, error) in zip(id_list, results):
    if error is not None:
      failed[_id] = error
      warnings.warn(f"Error in model for region {_id}:\n{error}", RegionFitFailedWarning, stacklevel=2)
    else:
      models[_id] = model

  if len(models) == 0:
    raise AllModelsFailedError("Modeling function failed in every region.", failed)

  # remove regions where the model failed
  regions = regions[regions[region_id].isin(list(models.keys()))].reset_index(drop=True)

  if verbose:
    print(f"Built {len(models)} of {len(id_list)} regional models")
    timing.print()

  params = {
    "buffer": buffer,
    "min_n": min_n,
    "fit_fn": getattr(fit_fn, "__name__", repr(fit_fn)),
    "failed": list(failed.keys()),
  }
  return Ensemble(models, regions, region_id, params=params, failed=failed)


class _RegionFitTask:

  def __init__(self, region: str, data: gpd.GeoDataFrame, fit_fn, fit_params: dict):
    self.region = region
    self.data = data
    self.fit_fn = fit_fn
    self.fit_params = fit_params


def _fit_region(task: _RegionFitTask):
  """Fit one region, returning (model, None) or (None, error text)."""
  try:
    if isinstance(task.fit_fn, RegionalModel):
      model = copy.deepcopy(task.fit_fn).fit(task.data, **task.fit_params)
    else:
      model = task.fit_fn(task.data, **task.fit_params)
  except Exception as e:
    return None, f"{type(e).__name__}: {e}"
  if model is None:
    return None, "fit function returned None"
  return model, None
