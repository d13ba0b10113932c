"""
Exceptions and warnings raised by remapkit.

Fatal errors derive from :class:`RemapError` (itself a ``ValueError``) and are raised before any computation begins.
Non-fatal conditions are reported with ``warnings.warn`` using the warning classes at the bottom of this module.
"""


class RemapError(ValueError):
  """Base exception for all remapkit errors."""
  pass


class InvalidGeometryError(RemapError):
  """Observations are not points, or regions are not polygons/multipolygons."""
  pass


class MissingColumnError(RemapError):
  """A named region id column (or distance matrix column) does not exist."""

  def __init__(self, message: str, column: str = None):
    super().__init__(message)
    self.column = column


class GeometryMismatchError(RemapError):
  """Observations and regions disagree on CRS, or a distance matrix has the wrong number of rows."""
  pass


class InvalidParameterError(RemapError):
  """A weighting, size or execution parameter is out of range."""

  def __init__(self, message: str, name: str = None):
    super().__init__(message)
    self.name = name


class EmptyRegionsError(RemapError):
  """No regions were supplied."""
  pass


class CRSUnitsError(RemapError):
  """The reference system is missing, or reports distances in a unit that cannot be converted to kilometers."""
  pass


class PredictionLengthError(RemapError):
  """A regional model returned a different number of values than it was given rows."""
  pass


class AllModelsFailedError(RemapError):
  """The fit function raised for every region."""

  def __init__(self, message: str, failed: dict = None):
    super().__init__(message)
    self.failed = failed or {}


class RegionFitFailedWarning(UserWarning):
  """The fit function raised for one region; that region is left out of the ensemble."""
  pass


class NegativeStderrWarning(UserWarning):
  """A regional model returned negative standard errors; they were clamped to zero."""
  pass
