import math
import warnings

import geopandas as gpd
import shapely
from geopy import Point
from geopy.distance import distance, geodesic
from pyproj import CRS
from shapely import Polygon

from remapkit.exceptions import CRSUnitsError


def get_crs(gdf: gpd.GeoDataFrame, projection_type: str) -> CRS:
  """
  Returns the appropriate CRS for a GeoDataFrame based on the specified projection type.

  :param gdf: Input GeoDataFrame.
  :type gdf: geopandas.GeoDataFrame
  :param projection_type: Type of projection ('latlon' or 'equal_distance').
  :type projection_type: str
  :returns: Appropriate CRS for the specified projection type.
  :rtype: pyproj.CRS
  :raises ValueError: If the projection type is not recognized.
  """
  gdf = gdf.to_crs("EPSG:4326")

  # centroid of points in a geographic CRS triggers a UserWarning we don't care about
  with warnings.catch_warnings():
    warnings.simplefilter("ignore", category=UserWarning)
    lon, lat = gdf.centroid.x.mean(), gdf.centroid.y.mean()

  if projection_type == 'latlon':
    return CRS.from_epsg(4326)

  elif projection_type == 'equal_distance':
    # Azimuthal Equidistant projection centered on the centroid (meters)
    return CRS.from_proj4(
      f"+proj=aeqd +lat_0={lat} +lon_0={lon} +datum=WGS84 +units=m"
    )

  else:
    raise ValueError("Invalid projection_type. Choose 'latlon' or 'equal_distance'.")


def is_geographic(crs) -> bool:
  """
  Whether a CRS measures positions in angular units (longitude/latitude).

  :raises CRSUnitsError: If no CRS is set.
  """
  if crs is None:
    raise CRSUnitsError("No CRS is set. Set a CRS on your data, see GeoDataFrame.set_crs().")
  return CRS.from_user_input(crs).is_geographic


def get_km_per_unit(crs) -> float:
  """
  Returns the number of kilometers in one unit of a projected CRS.

  :param crs: Any CRS accepted by pyproj.
  :returns: Kilometers per native unit.
  :rtype: float
  :raises CRSUnitsError: If the CRS is missing, geographic, or has no linear unit.
  """
  if crs is None:
    raise CRSUnitsError("No CRS is set. Set a CRS on your data, see GeoDataFrame.set_crs().")
  crs = CRS.from_user_input(crs)
  if crs.is_geographic:
    raise CRSUnitsError(f"CRS '{crs.name}' is geographic and has no linear unit.")
  axis_info = crs.axis_info
  if len(axis_info) == 0:
    raise CRSUnitsError(f"CRS '{crs.name}' has no axis information, cannot determine its distance unit.")
  factor = axis_info[0].unit_conversion_factor
  if factor is None or factor <= 0 or math.isnan(factor):
    raise CRSUnitsError(f"CRS '{crs.name}' reports unit '{axis_info[0].unit_name}' which cannot be converted to kilometers.")
  return factor / 1000.0


def km_per_degree(lat: float) -> float:
  """
  A conservative (small) number of kilometers spanned by one degree at the given latitude.

  Takes the smaller of the geodesic length of one degree of latitude at the equator (its shortest) and one degree of
  longitude along the given parallel, so that converting kilometers to degrees with it never under-shoots.

  :param lat: Latitude in degrees.
  :type lat: float
  :returns: Kilometers per degree (0.0 at the poles).
  :rtype: float
  """
  lat = max(-90.0, min(90.0, lat))
  lat_km = geodesic((0.0, 0.0), (1.0, 0.0)).km
  lon_km = geodesic((lat, 0.0), (lat, 1.0)).km
  return min(lat_km, lon_km)


def km_to_degrees(km: float, lat: float) -> float:
  """
  Converts a distance in kilometers to an approximate angular distance at a reference latitude.

  :param km: Distance in kilometers.
  :type km: float
  :param lat: Reference latitude in degrees.
  :type lat: float
  :returns: Distance in degrees, or infinity if the conversion is degenerate (at a pole).
  :rtype: float
  """
  factor = km_per_degree(lat)
  if factor <= 1e-9:
    return math.inf
  return km / factor


def project_to_equal_distance(gdf: gpd.GeoDataFrame, *others: gpd.GeoDataFrame):
  """
  Projects one or more GeoDataFrames into an azimuthal equidistant CRS centered on the first.

  :returns: List of projected GeoDataFrames, in the order given, with native units of meters.
  """
  crs = get_crs(gdf, "equal_distance")
  return [g.to_crs(crs) for g in (gdf,) + others]


def add_coordinate_fields(gdf_in: gpd.GeoDataFrame, x_field: str = "x", y_field: str = "y") -> gpd.GeoDataFrame:
  """
  Adds the native x/y coordinates of each point as attribute columns, so that models can use location as a feature.

  :param gdf_in: GeoDataFrame with point geometry.
  :type gdf_in: geopandas.GeoDataFrame
  :param x_field: Name of the new x column.
  :type x_field: str
  :param y_field: Name of the new y column.
  :type y_field: str
  :returns: Copy of the input with the two new columns.
  :rtype: geopandas.GeoDataFrame
  """
  gdf = gdf_in.copy()
  gdf[x_field] = gdf.geometry.x
  gdf[y_field] = gdf.geometry.y
  return gdf


def offset_coordinate_km(lat, lon, lat_km, lon_km):
  """Offsets a coordinate by lat_km km north and lon_km km east."""
  start = Point(lat, lon)

  # Move latitude (North/South)
  new_lat = distance(kilometers=abs(lat_km)).destination(start, bearing=0 if lat_km >= 0 else 180).latitude

  # Move longitude (East/West); the geodesic already accounts for the narrowing of degrees with latitude
  new_lon = distance(kilometers=abs(lon_km)).destination(start, bearing=90 if lon_km >= 0 else 270).longitude

  return new_lat, new_lon


def create_geo_rect_shape_km(lat, lon, width_km, height_km) -> Polygon:
  """
  Creates a rectangle polygon (in longitude/latitude) centered at the specified latitude and longitude.

  :param lat: The latitude of the center of the rectangle.
  :param lon: The longitude of the center of the rectangle.
  :param width_km: The width of the rectangle in kilometers.
  :param height_km: The height of the rectangle in kilometers.
  :return: A shapely Polygon.
  """
  nw_lat, nw_lon = offset_coordinate_km(lat, lon, height_km / 2, -width_km / 2)
  ne_lat, ne_lon = offset_coordinate_km(lat, lon, height_km / 2, width_km / 2)
  se_lat, se_lon = offset_coordinate_km(lat, lon, -height_km / 2, width_km / 2)
  sw_lat, sw_lon = offset_coordinate_km(lat, lon, -height_km / 2, -width_km / 2)

  # Order: NW → NE → SE → SW → NW (to close polygon)
  return Polygon([(nw_lon, nw_lat), (ne_lon, ne_lat), (se_lon, se_lat), (sw_lon, sw_lat), (nw_lon, nw_lat)])


def is_polygonal(geom) -> bool:
  if geom is None or geom.is_empty:
    return False
  return shapely.get_type_id(geom) in (3, 6)
