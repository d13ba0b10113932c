import numpy as np
import pandas as pd


def div_field_z_safe(numerator: pd.Series | np.ndarray, denominator: pd.Series | np.ndarray) -> np.ndarray:
  """
  Perform a divide-by-zero-safe division of two series or arrays, replacing division by zero with NaN.

  :param numerator: Numerator series or array.
  :type numerator: pandas.Series or numpy.ndarray
  :param denominator: Denominator series or array.
  :type denominator: pandas.Series or numpy.ndarray
  :returns: The result of the division with divide-by-zero cases replaced by NaN.
  :rtype: numpy.ndarray
  """
  numerator = np.asarray(numerator, dtype=float)
  denominator = np.asarray(denominator, dtype=float)

  # Get the index of all rows where the denominator is zero.
  idx_denominator_zero = (denominator == 0)

  result = np.full(denominator.shape, np.nan, dtype=float)

  # Replace other values with the result of the division.
  result[~idx_denominator_zero] = numerator[~idx_denominator_zero] / denominator[~idx_denominator_zero]
  return result
