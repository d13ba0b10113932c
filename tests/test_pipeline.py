import numpy as np

from remapkit.modeling import fit_ensemble
from remapkit.pipeline import fit_from_settings, predict_from_settings, distances_from_settings
from remapkit.prediction import predict_smooth
from remapkit.synthetic import make_triangle_regions, make_random_points, make_grid_points
from remapkit.utilities.modeling import MRAModel
from remapkit.utilities.settings import load_settings

BOUNDS = (500000.0, 4000000.0, 600000.0, 4100000.0)


def test_settings_driven_run():
  print("")
  settings = load_settings(settings_object={
    "distance": {"max_dist": 10},
    "modeling": {"buffer": 10, "min_n": 20},
    "prediction": {"smooth": "$$distance.max_dist"},
    "parallel": {"cores": 2, "backend": "threading"}
  })
  regions = make_triangle_regions()
  observations = make_random_points(BOUNDS, 300, seed=5, slope=1.0, noise=1.0)
  template = MRAModel("value", ["x"])

  ensemble = fit_from_settings(observations, regions, template, settings, region_id="name")
  direct = fit_ensemble(observations, regions, template, buffer=10, min_n=20, region_id="name")
  assert ensemble.id_list == direct.id_list
  assert ensemble.params["min_n"] == 20

  grid = make_grid_points(BOUNDS, 15, 15)
  result = predict_from_settings(ensemble, grid, settings)
  expected = predict_smooth(direct, grid, smooth=10)
  np.testing.assert_allclose(result, expected)
  assert not np.isnan(result).any()

  distances = distances_from_settings(grid, ensemble.regions, settings, region_id="name")
  reused = predict_from_settings(ensemble, grid, settings, distances=distances)
  np.testing.assert_allclose(reused, result)
