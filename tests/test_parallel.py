import pytest

from remapkit.exceptions import InvalidParameterError
from remapkit.parallel import run_parallel


def _square(x):
  return x * x


def _fail_on_three(x):
  if x == 3:
    raise RuntimeError("three")
  return x


def test_serial_order_and_progress():
  calls = []
  result = run_parallel(_square, range(5), progress=lambda done, total: calls.append((done, total)))
  assert result == [0, 1, 4, 9, 16]
  assert calls == [(1, 5), (2, 5), (3, 5), (4, 5), (5, 5)]


@pytest.mark.parametrize("backend", ["threading", "loky"])
def test_parallel_order(backend):
  calls = []
  result = run_parallel(_square, range(20), cores=3, backend=backend, progress=lambda d, t: calls.append((d, t)))
  assert result == [i * i for i in range(20)]
  assert calls[-1] == (20, 20)


def test_empty():
  assert run_parallel(_square, [], cores=4) == []


def test_errors_propagate():
  with pytest.raises(RuntimeError):
    run_parallel(_fail_on_three, range(5))
  with pytest.raises(RuntimeError):
    run_parallel(_fail_on_three, range(5), cores=2, backend="threading")


def test_invalid_arguments():
  with pytest.raises(InvalidParameterError):
    run_parallel(_square, range(3), cores=0)
  with pytest.raises(InvalidParameterError):
    run_parallel(_square, range(3), cores=1.5)
  with pytest.raises(InvalidParameterError) as e:
    run_parallel(_square, range(3), backend="dask")
  assert e.value.name == "backend"
