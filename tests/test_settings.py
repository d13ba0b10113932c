import json

import pytest

from remapkit.utilities.settings import merge_settings, load_settings, get_buffer, get_min_n, get_smooth, \
  get_max_dist, get_cores, get_backend, get_mode, lookup_variable_in_settings


def test_merge():
  print("")
  template = {
    "version": "abc",
    "modeling": {
      "buffer": 0.0,
      "min_n": 1
    }
  }
  local = {
    "version": "def",
    "modeling": {
      "buffer": 10.0
    },
    "extra": {"a": 1}
  }
  merged = merge_settings(template, local)
  assert merged == {
    "version": "def",
    "modeling": {
      "buffer": 10.0,
      "min_n": 1
    },
    "extra": {"a": 1}
  }
  # template untouched
  assert template["modeling"]["buffer"] == 0.0


def test_defaults():
  s = load_settings()
  assert get_max_dist(s) is None
  assert get_buffer(s) == 0.0
  assert get_min_n(s) == 1
  assert get_smooth(s) == 0.0
  assert get_mode(s) == "value"
  assert get_cores(s) == 1
  assert get_backend(s) == "loky"


def test_getters_on_empty_dict():
  assert get_buffer({}) == 0.0
  assert get_cores({}) == 1
  assert get_mode({}) == "value"


def test_comments_and_variables(tmp_path):
  settings_file = tmp_path / "settings.json"
  settings_file.write_text(json.dumps({
    "__note": "comments are dropped",
    "modeling": {
      "__why": "wide buffer",
      "buffer": 25,
      "min_n": 30
    },
    "prediction": {
      "smooth": "$$modeling.buffer"
    },
    "distance": {
      "max_dist": "$$prediction.smooth"
    }
  }))
  s = load_settings(str(settings_file))
  assert "__note" not in s
  assert "__why" not in s["modeling"]
  assert get_buffer(s) == 25
  assert get_min_n(s) == 30
  assert get_smooth(s) == 25
  assert get_max_dist(s) == 25
  # defaults still filled in
  assert get_backend(s) == "loky"


def test_settings_object_overrides_file(tmp_path):
  settings_file = tmp_path / "settings.json"
  settings_file.write_text(json.dumps({"parallel": {"cores": 2, "backend": "threading"}}))
  s = load_settings(str(settings_file), settings_object={"parallel": {"cores": 4}})
  assert get_cores(s) == 4
  assert get_backend(s) == "threading"


def test_per_region_values():
  s = load_settings(settings_object={"prediction": {"smooth": {"a": 1, "b": 2}}})
  assert get_smooth(s) == {"a": 1, "b": 2}


def test_lookup_missing_variable():
  s = {"a": {"b": 1}}
  assert lookup_variable_in_settings(s, "a.b") == 1
  assert lookup_variable_in_settings(s, "a.c") is None
  assert lookup_variable_in_settings(s, "z") is None


def test_missing_file():
  with pytest.raises(FileNotFoundError):
    load_settings("does/not/exist.json")
