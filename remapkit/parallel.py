from typing import Any, Callable, Iterable

from joblib import Parallel, delayed

from remapkit.exceptions import InvalidParameterError
from remapkit.utilities.assertions import assert_cores

BACKENDS = ["loky", "threading", "multiprocessing"]


def run_parallel(
    func: Callable[[Any], Any],
    items: Iterable[Any],
    cores: int = 1,
    backend: str = "loky",
    progress: Callable[[int, int], None] | None = None
) -> list:
  """
  Map a function over independent units of work (one per region, typically) and return the results in item order.

  With ``cores == 1`` the work runs in a plain loop in the calling process. Otherwise it is dispatched to a joblib
  worker pool; each worker receives its own pickled copy of the item, so no state is shared between units of work.
  An exception raised by any unit of work propagates and aborts the whole phase.

  :param func: Function applied to each item.
  :type func: callable
  :param items: Units of work.
  :type items: iterable
  :param cores: Number of workers.
  :type cores: int
  :param backend: joblib backend, one of "loky" (processes), "threading", "multiprocessing".
  :type backend: str
  :param progress: Optional callback called as ``progress(done, total)``.
  :type progress: callable, optional
  :returns: List of results, one per item, in item order.
  :rtype: list
  :raises InvalidParameterError: If ``cores`` or ``backend`` is invalid.
  """
  assert_cores(cores)
  if backend not in BACKENDS:
    raise InvalidParameterError(f"'backend' must be one of {BACKENDS}, got '{backend}'", "backend")

  items = list(items)
  total = len(items)

  if cores == 1 or total <= 1:
    results = []
    for i, item in enumerate(items):
      results.append(func(item))
      if progress is not None:
        progress(i + 1, total)
    return results

  # results are tagged with their position and reassembled in item order
  tagged = Parallel(n_jobs=min(cores, total), backend=backend)(
    delayed(_run_indexed)(func, i, item) for i, item in enumerate(items)
  )

  results = [None] * total
  for i, result in tagged:
    results[i] = result

  if progress is not None:
    progress(total, total)

  return results


def _run_indexed(func, i, item):
  return i, func(item)
