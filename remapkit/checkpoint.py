import os
import pickle

from remapkit.modeling import Ensemble


def _pickle_path(path: str) -> str:
  if path.endswith(".pickle"):
    return path
  return f"{path}.pickle"


def write_ensemble(ensemble: Ensemble, path: str) -> str:
  """
  Save a fitted ensemble to disk.

  :param ensemble: The ensemble to save.
  :type ensemble: Ensemble
  :param path: Destination path; ".pickle" is appended if missing. Parent directories are created.
  :type path: str
  :returns: The full path written.
  :rtype: str
  """
  full_path = _pickle_path(path)
  directory = os.path.dirname(full_path)
  if directory != "":
    os.makedirs(directory, exist_ok=True)
  with open(full_path, "wb") as file:
    pickle.dump(ensemble, file)
  return full_path


def read_ensemble(path: str) -> Ensemble:
  """
  Load an ensemble saved with :func:`write_ensemble`.

  :raises TypeError: If the file doesn't hold an Ensemble.
  """
  full_path = _pickle_path(path)
  with open(full_path, "rb") as file:
    ensemble = pickle.load(file)
  if not isinstance(ensemble, Ensemble):
    raise TypeError(f"{full_path} does not contain an Ensemble (found {type(ensemble).__name__})")
  return ensemble


def exists_ensemble(path: str) -> bool:
  return os.path.exists(_pickle_path(path))
