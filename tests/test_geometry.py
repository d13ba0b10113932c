import geopandas as gpd
import pytest
import shapely
from shapely import Point

from remapkit.exceptions import CRSUnitsError
from remapkit.synthetic import make_triangle_regions, make_geo_regions
from remapkit.utilities.geometry import get_crs, get_km_per_unit, km_per_degree, km_to_degrees, is_geographic, \
  is_polygonal, add_coordinate_fields, create_geo_rect_shape_km


def _get_test_cases():
  return [
    gpd.GeoDataFrame(geometry=[Point( -77.0369,  38.9072)], crs="EPSG:4326"), # Washington DC
    gpd.GeoDataFrame(geometry=[Point(   2.3522,  48.8566)], crs="EPSG:4326"), # Paris
    gpd.GeoDataFrame(geometry=[Point( 151.2093, -33.8688)], crs="EPSG:4326"), # Sydney
    gpd.GeoDataFrame(geometry=[Point(  37.6173,  55.7558)], crs="EPSG:4326"), # Moscow
  ]


def test_crs_convert():
  for gdf in _get_test_cases():
    assert get_crs(gdf, "latlon").to_epsg() == 4326
    crs = get_crs(gdf, "equal_distance")
    assert crs.to_proj4().startswith("+proj=aeqd")

  with pytest.raises(ValueError):
    get_crs(_get_test_cases()[0], "mercator")


def test_km_per_unit():
  assert get_km_per_unit("EPSG:32612") == pytest.approx(0.001)
  # NAD83 / New York Long Island (ftUS)
  assert get_km_per_unit("EPSG:2263") == pytest.approx(0.0003048006, rel=1e-6)

  with pytest.raises(CRSUnitsError):
    get_km_per_unit("EPSG:4326")
  with pytest.raises(CRSUnitsError):
    get_km_per_unit(None)


def test_is_geographic():
  assert is_geographic("EPSG:4326")
  assert not is_geographic("EPSG:32612")
  with pytest.raises(CRSUnitsError):
    is_geographic(None)


def test_km_per_degree():
  # a degree of latitude at the equator is the shortest degree of latitude
  assert km_per_degree(0.0) == pytest.approx(110.574, abs=0.01)
  assert km_per_degree(60.0) == pytest.approx(55.8, abs=0.1)
  assert km_per_degree(-60.0) == pytest.approx(km_per_degree(60.0))
  assert km_per_degree(90.0) == pytest.approx(0.0, abs=1e-6)

  assert km_to_degrees(110.574, 0.0) == pytest.approx(1.0, abs=0.001)
  assert km_to_degrees(10.0, 90.0) == float("inf")
  # conservative: the degree count never falls short
  assert km_to_degrees(100.0, 45.0) > km_to_degrees(100.0, 0.0)


def test_geo_rect():
  rect = create_geo_rect_shape_km(40.0, -105.0, 10.0, 10.0)
  projected = gpd.GeoSeries([rect], crs="EPSG:4326").to_crs("EPSG:32613")
  assert projected.area.iloc[0] == pytest.approx(100e6, rel=0.02)

  regions = make_geo_regions(40.0, -105.0, 10.0, n=3)
  assert len(regions) == 3
  assert regions.crs.to_epsg() == 4326
  # adjacent squares share their edges
  assert regions.geometry.iloc[0].distance(regions.geometry.iloc[1]) == pytest.approx(0.0, abs=1e-9)


def test_is_polygonal():
  regions = make_triangle_regions()
  assert is_polygonal(regions.geometry.iloc[0])
  assert is_polygonal(shapely.union_all(regions.geometry.to_numpy()))
  assert is_polygonal(shapely.multipolygons([regions.geometry.iloc[0], regions.geometry.iloc[1]]))
  assert not is_polygonal(Point(0, 0))
  assert not is_polygonal(None)
  assert not is_polygonal(shapely.Polygon())


def test_triangles_tile_square():
  regions = make_triangle_regions(side_km=100.0)
  assert regions.geometry.area.sum() == pytest.approx(100000.0 ** 2)
  assert shapely.union_all(regions.geometry.to_numpy()).area == pytest.approx(100000.0 ** 2)


def test_add_coordinate_fields():
  gdf = gpd.GeoDataFrame(geometry=[Point(1, 2), Point(3, 4)], crs="EPSG:32612")
  result = add_coordinate_fields(gdf)
  assert result["x"].tolist() == [1.0, 3.0]
  assert result["y"].tolist() == [2.0, 4.0]
  assert "x" not in gdf.columns
