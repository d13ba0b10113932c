from abc import ABC, abstractmethod

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.base import clone
from statsmodels.regression.linear_model import RegressionResults


class RegionalModel(ABC):
  """
  Base class for model families that can be fitted separately in each region.

  Instances act as templates: :func:`remapkit.modeling.fit_ensemble` deep-copies the template for every region and
  calls :meth:`fit` on the copy with that region's training subset.
  """

  @abstractmethod
  def fit(self, df: pd.DataFrame, **params) -> "RegionalModel":
    """Fit the model on a training subset and return self"""
    pass

  @abstractmethod
  def predict(self, df: pd.DataFrame, **params) -> np.ndarray:
    """Return one value per row of df (an empty array for an empty df)"""
    pass


class MRAModel(RegionalModel):
  """Multiple regression (ordinary least squares) on a set of independent variables."""

  def __init__(self, dep_var: str, ind_vars: list[str], intercept: bool = True):
    self.dep_var = dep_var
    self.ind_vars = list(ind_vars)
    self.intercept = intercept
    self.fitted_model: RegressionResults | None = None

  def _design_matrix(self, df: pd.DataFrame) -> np.ndarray:
    X = df[self.ind_vars].astype(np.float64)
    if self.intercept:
      # "add" so a single row (where every column looks constant) still gets its intercept column
      X = sm.add_constant(X, has_constant="add")
    return X.to_numpy()

  def fit(self, df: pd.DataFrame, **params) -> "MRAModel":
    if len(df) == 0:
      raise ValueError("Cannot fit a regression on zero observations")
    y = df[self.dep_var].astype(np.float64).to_numpy()
    self.fitted_model = sm.OLS(y, self._design_matrix(df)).fit()
    return self

  def predict(self, df: pd.DataFrame, se: bool = False, **params) -> np.ndarray:
    """
    Predict values, or with ``se=True`` the standard error of the mean prediction.

    :param df: Rows to predict.
    :type df: pandas.DataFrame
    :param se: If True, return standard errors instead of predictions.
    :type se: bool
    :returns: One value per row.
    :rtype: numpy.ndarray
    """
    if self.fitted_model is None:
      raise ValueError("Model has not been fitted")
    if len(df) == 0:
      return np.array([], dtype=float)
    X = self._design_matrix(df)
    if se:
      return np.asarray(self.fitted_model.get_prediction(X).se_mean, dtype=float)
    return np.asarray(self.fitted_model.predict(X), dtype=float)

  def __repr__(self):
    return f"MRAModel({self.dep_var} ~ {' + '.join(self.ind_vars)})"


class AverageModel(RegionalModel):

  def __init__(self, dep_var: str, average_type: str = "mean"):
    if average_type not in ["mean", "median"]:
      raise ValueError(f"Invalid average_type: {average_type}")
    self.dep_var = dep_var
    self.type = average_type
    self.value: float | None = None
    self.std_error: float = float("nan")

  def fit(self, df: pd.DataFrame, **params) -> "AverageModel":
    values = df[self.dep_var].astype(np.float64)
    values = values[values.notna()]
    if len(values) == 0:
      raise ValueError(f"No non-null values of '{self.dep_var}' to average")
    if self.type == "mean":
      self.value = float(values.mean())
    else:
      self.value = float(values.median())
    if len(values) > 1:
      self.std_error = float(values.std(ddof=1) / np.sqrt(len(values)))
    return self

  def predict(self, df: pd.DataFrame, se: bool = False, **params) -> np.ndarray:
    if self.value is None:
      raise ValueError("Model has not been fitted")
    value = self.std_error if se else self.value
    return np.full(len(df), value, dtype=float)

  def __repr__(self):
    return f"AverageModel({self.type} of {self.dep_var})"


class SKLearnModel(RegionalModel):
  """Wraps any scikit-learn regressor; the estimator is cloned on every fit so templates are never mutated."""

  def __init__(self, estimator, dep_var: str, ind_vars: list[str]):
    self.estimator = estimator
    self.dep_var = dep_var
    self.ind_vars = list(ind_vars)
    self.fitted_estimator = None

  def fit(self, df: pd.DataFrame, **params) -> "SKLearnModel":
    X = df[self.ind_vars].to_numpy(dtype=np.float64)
    y = df[self.dep_var].to_numpy(dtype=np.float64)
    self.fitted_estimator = clone(self.estimator).fit(X, y, **params)
    return self

  def predict(self, df: pd.DataFrame, se: bool = False, **params) -> np.ndarray:
    if self.fitted_estimator is None:
      raise ValueError("Model has not been fitted")
    if se:
      raise ValueError(f"{type(self.estimator).__name__} does not provide standard errors")
    if len(df) == 0:
      return np.array([], dtype=float)
    X = df[self.ind_vars].to_numpy(dtype=np.float64)
    return np.asarray(self.fitted_estimator.predict(X, **params), dtype=float)

  def __repr__(self):
    return f"SKLearnModel({type(self.estimator).__name__})"
