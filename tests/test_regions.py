import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely import Point, Polygon

from remapkit.exceptions import MissingColumnError, EmptyRegionsError, InvalidGeometryError, InvalidParameterError
from remapkit.regions import process_regions, process_numbers, get_id_list
from remapkit.synthetic import make_strip_regions, make_triangle_regions


def _make_square(x0, y0, size=1000.0):
  return Polygon([(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size), (x0, y0)])


def test_implicit_ids():
  regions = make_strip_regions(3)
  result = process_regions(regions)
  assert list(result.columns) == ["region", "geometry"]
  assert get_id_list(result) == ["0", "1", "2"]
  assert result.crs == regions.crs


def test_union_shared_ids():
  regions = gpd.GeoDataFrame(
    {"name": ["x", "y", "x"]},
    geometry=[_make_square(0, 0), _make_square(5000, 0), _make_square(1000, 0)],
    crs="EPSG:32612"
  )
  result = process_regions(regions, "name")
  assert get_id_list(result) == ["x", "y"]
  assert len(result) == 2
  assert result.geometry.iloc[0].area == pytest.approx(2000000.0)
  assert result.geometry.iloc[1].area == pytest.approx(1000000.0)


def test_numeric_ids_become_strings():
  regions = gpd.GeoDataFrame(
    {"zone": [3, 1]},
    geometry=[_make_square(0, 0), _make_square(5000, 0)],
    crs="EPSG:32612"
  )
  result = process_regions(regions, "zone")
  assert get_id_list(result) == ["3", "1"]
  assert list(result.columns) == ["zone", "geometry"]


def test_region_errors():
  regions = make_triangle_regions()
  with pytest.raises(MissingColumnError) as e:
    process_regions(regions, "nope")
  assert e.value.column == "nope"

  with pytest.raises(EmptyRegionsError):
    process_regions(regions.iloc[0:0])

  points = gpd.GeoDataFrame(geometry=[Point(0, 0)], crs="EPSG:32612")
  with pytest.raises(InvalidGeometryError):
    process_regions(points)


def test_process_numbers():
  id_list = ["a", "b", "c"]

  result = process_numbers(5, "buffer", id_list)
  assert result.tolist() == [5.0, 5.0, 5.0]
  assert list(result.index) == id_list

  result = process_numbers({"c": 3, "a": 1, "b": 2}, "smooth", id_list)
  assert result.tolist() == [1.0, 2.0, 3.0]

  result = process_numbers(pd.Series({"a": 0, "b": 0.5, "c": 1}), "smooth", id_list)
  assert result.tolist() == [0.0, 0.5, 1.0]

  result = process_numbers([2.5], "buffer", id_list)
  assert result.tolist() == [2.5, 2.5, 2.5]


def test_process_numbers_positional():
  result = process_numbers([1, 2], "buffer", ["0", "1"])
  assert result.tolist() == [1.0, 2.0]

  # named regions must use a mapping
  with pytest.raises(InvalidParameterError):
    process_numbers([1, 2], "buffer", ["a", "b"])


@pytest.mark.parametrize("value", [-1, np.nan, True, "10", None])
def test_process_numbers_invalid(value):
  with pytest.raises(InvalidParameterError) as e:
    process_numbers(value, "buffer", ["a", "b"])
  assert e.value.name == "buffer"


def test_process_numbers_bad_keys():
  with pytest.raises(InvalidParameterError):
    process_numbers({"a": 1, "z": 1}, "smooth", ["a", "b"])
  with pytest.raises(InvalidParameterError):
    process_numbers({"a": 1}, "smooth", ["a", "b"])
