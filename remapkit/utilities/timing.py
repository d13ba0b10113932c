import time


class TimingData:
  """Accumulates wall-clock durations for named phases (distances, building, predicting, ...)."""

  def __init__(self):
    self._data = {}
    self.results = {}

  def start(self, key: str):
    if key in self.results:
      # resume: keep what was already accumulated for this key
      self._data[key] = time.time() - self.results[key]
    else:
      self._data[key] = time.time()

  def stop(self, key: str) -> float:
    if key in self._data:
      result = time.time() - self._data[key]
      self.results[key] = result
      return result
    else:
      return -1

  def print(self):
    for key, value in self.results.items():
      print(f"--> {key}: {value:.2f}s")
