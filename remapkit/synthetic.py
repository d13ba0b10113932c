"""
Synthetic
---------
Small synthetic datasets of regions and observations, for tests and examples. All projected outputs use UTM zone 12N
(meters) unless another CRS is given.
"""

import geopandas as gpd
import numpy as np
from shapely import Point, Polygon

from remapkit.utilities.geometry import create_geo_rect_shape_km

DEFAULT_CRS = "EPSG:32612"
DEFAULT_ORIGIN = (500000.0, 4000000.0)


def make_triangle_regions(
    side_km: float = 100.0,
    origin: tuple[float, float] = DEFAULT_ORIGIN,
    crs: str = DEFAULT_CRS,
    region_id: str = "name"
) -> gpd.GeoDataFrame:
  """
  Three triangles that tile a square: one with its base on the bottom edge and apex at the top middle, and one on
  either side of it.

  :param side_km: Side length of the square in km.
  :type side_km: float
  :param origin: Lower-left corner of the square, in meters.
  :type origin: tuple[float, float]
  :param crs: Projected CRS with units of meters.
  :type crs: str
  :param region_id: Name of the region id column.
  :type region_id: str
  :returns: Regions "a" (middle), "b" (left) and "c" (right).
  :rtype: geopandas.GeoDataFrame
  """
  x0, y0 = origin
  s = side_km * 1000.0
  bl = (x0, y0)
  br = (x0 + s, y0)
  tl = (x0, y0 + s)
  tr = (x0 + s, y0 + s)
  tm = (x0 + s / 2, y0 + s)
  geoms = [
    Polygon([bl, br, tm, bl]),
    Polygon([bl, tm, tl, bl]),
    Polygon([br, tr, tm, br]),
  ]
  return gpd.GeoDataFrame({region_id: ["a", "b", "c"]}, geometry=geoms, crs=crs)


def make_strip_regions(
    n: int = 2,
    width_km: float = 10.0,
    height_km: float = 10.0,
    origin: tuple[float, float] = DEFAULT_ORIGIN,
    crs: str = DEFAULT_CRS
) -> gpd.GeoDataFrame:
  """
  ``n`` rectangles of equal size side by side along the x axis, sharing their vertical edges. Region ``i`` spans
  x from ``origin[0] + i * width`` to ``origin[0] + (i + 1) * width``.

  :returns: Regions with no id column (each row is a region).
  :rtype: geopandas.GeoDataFrame
  """
  x0, y0 = origin
  w = width_km * 1000.0
  h = height_km * 1000.0
  geoms = []
  for i in range(n):
    left = x0 + i * w
    geoms.append(Polygon([(left, y0), (left + w, y0), (left + w, y0 + h), (left, y0 + h), (left, y0)]))
  return gpd.GeoDataFrame(geometry=geoms, crs=crs)


def make_geo_regions(lat: float, lon: float, size_km: float, n: int = 2) -> gpd.GeoDataFrame:
  """
  ``n`` adjacent square regions in longitude/latitude (EPSG:4326), the first centered on (lat, lon) and the rest to
  its east.
  """
  geoms = []
  left = create_geo_rect_shape_km(lat, lon, size_km, size_km)
  minx, miny, maxx, maxy = left.bounds
  step = maxx - minx
  for i in range(n):
    geoms.append(Polygon([
      (minx + i * step, miny),
      (maxx + i * step, miny),
      (maxx + i * step, maxy),
      (minx + i * step, maxy),
      (minx + i * step, miny)
    ]))
  return gpd.GeoDataFrame(geometry=geoms, crs="EPSG:4326")


def make_points(xs, ys, crs: str = DEFAULT_CRS, **fields) -> gpd.GeoDataFrame:
  """Observations at the given coordinates, with any extra columns passed as keyword arguments."""
  geoms = [Point(x, y) for x, y in zip(xs, ys)]
  return gpd.GeoDataFrame(dict(fields), geometry=geoms, crs=crs)


def make_grid_points(
    bounds: tuple[float, float, float, float],
    nx: int,
    ny: int,
    crs: str = DEFAULT_CRS
) -> gpd.GeoDataFrame:
  """
  A regular ``nx`` by ``ny`` grid of observations covering ``bounds`` (minx, miny, maxx, maxy), edges included.
  """
  minx, miny, maxx, maxy = bounds
  gx, gy = np.meshgrid(np.linspace(minx, maxx, nx), np.linspace(miny, maxy, ny))
  return make_points(gx.ravel(), gy.ravel(), crs=crs)


def make_random_points(
    bounds: tuple[float, float, float, float],
    n: int,
    seed: int = 1337,
    crs: str = DEFAULT_CRS,
    slope: float = 0.0,
    noise: float = 0.0
) -> gpd.GeoDataFrame:
  """
  ``n`` observations placed uniformly at random inside ``bounds``.

  Each observation carries its coordinates in columns ``x`` and ``y``, and a response ``value = slope * x_km + noise``
  where ``x_km`` is the distance in km from the left edge of ``bounds`` and the noise is normal with standard
  deviation ``noise``.

  :param bounds: (minx, miny, maxx, maxy) in the units of ``crs``.
  :param n: Number of observations.
  :type n: int
  :param seed: Random seed.
  :type seed: int
  :returns: The observations.
  :rtype: geopandas.GeoDataFrame
  """
  rng = np.random.RandomState(seed)
  minx, miny, maxx, maxy = bounds
  xs = rng.uniform(minx, maxx, n)
  ys = rng.uniform(miny, maxy, n)
  value = slope * (xs - minx) / 1000.0
  if noise > 0:
    value = value + rng.normal(0.0, noise, n)
  return make_points(xs, ys, crs=crs, x=xs, y=ys, value=value)
