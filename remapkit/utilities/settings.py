import copy
import json

SETTINGS_TEMPLATE = {
  "distance": {
    "max_dist": None
  },
  "modeling": {
    "buffer": 0.0,
    "min_n": 1
  },
  "prediction": {
    "smooth": 0.0,
    "mode": "value"
  },
  "parallel": {
    "cores": 1,
    "backend": "loky"
  }
}


def load_settings(settings_file: str | None = None, settings_object: dict | None = None):
  """
  Load settings from a JSON file and/or a dictionary, on top of the default template.

  Keys prefixed with "__" are treated as comments and removed. String values of the form "$$path.to.key" are
  replaced with the value found at that path.

  :param settings_file: Path to a JSON settings file.
  :type settings_file: str, optional
  :param settings_object: Settings dictionary; applied after (and overriding) the file.
  :type settings_object: dict, optional
  :returns: The merged and processed settings.
  :rtype: dict
  """
  settings = copy.deepcopy(SETTINGS_TEMPLATE)
  if settings_file is not None:
    with open(settings_file, "r") as f:
      local = json.load(f)
    settings = merge_settings(settings, local)
  if settings_object is not None:
    settings = merge_settings(settings, copy.deepcopy(settings_object))
  return process_settings(settings)


def process_settings(settings: dict):
  s = settings.copy()

  # Step 1: remove any and all keys that are prefixed with the string "__":
  s = remove_comments_from_settings(s)

  # Step 2: do variable replacement:
  s = replace_variables(s)

  return s


def remove_comments_from_settings(s: dict):
  comment_token = "__"
  keys_to_remove = []
  for key in s:
    entry = s[key]
    if key.startswith(comment_token):
      keys_to_remove.append(key)
    elif isinstance(entry, dict):
      s[key] = remove_comments_from_settings(entry)
  for k in keys_to_remove:
    del s[k]
  return s


def replace_variables(settings: dict):

  result = settings.copy()
  failsafe = 999
  changes = 1

  while changes > 0 and failsafe > 0:
    result, changes = _replace_variables(result, settings)
    failsafe -= 1

  return result


def _replace_variables(node: dict | list | str, settings: dict, var_token: str = "$$"):
  # For each key-value pair, search for values that are strings prefixed with $$, and replace them accordingly

  changes = 0
  replacement = node

  if isinstance(node, str):
    if node.startswith(var_token):
      var_name = node[len(var_token):]
      replacement = lookup_variable_in_settings(settings, var_name)
      changes += 1

  elif isinstance(node, dict):
    for key in node:
      _replacement, _changes = _replace_variables(node[key], settings, var_token)
      if _changes > 0:
        node[key] = _replacement
        changes += _changes

  elif isinstance(node, list):
    for i, entry in enumerate(node):
      _replacement, _changes = _replace_variables(entry, settings, var_token)
      if _changes > 0:
        node[i] = _replacement
        changes += _changes

  return replacement, changes


def lookup_variable_in_settings(s: dict, var_name: str, path: list[str] = None):
  if path is None:
    # split the variable name by periods, if it has any
    path = var_name.split(".")

  if len(path) > 0 and isinstance(s, dict):
    first_bit = path[0]
    if first_bit in s:
      if len(path) == 1:
        return s[first_bit]
      else:
        return lookup_variable_in_settings(s[first_bit], "", path[1:])

  return None


def merge_settings(template: dict, local: dict):
  # Start by copying the template
  merged = template.copy()

  for key in local:
    entry_l = local[key]
    if key in template:
      entry_t = template[key]
      if isinstance(entry_t, dict) and isinstance(entry_l, dict):
        # If both are dictionaries, merge them recursively:
        merged[key] = merge_settings(entry_t, entry_l)
      else:
        merged[key] = entry_l
    else:
      merged[key] = entry_l

  return merged


def get_max_dist(s: dict):
  return s.get("distance", {}).get("max_dist", None)


def get_buffer(s: dict):
  return s.get("modeling", {}).get("buffer", 0.0)


def get_min_n(s: dict) -> int:
  return s.get("modeling", {}).get("min_n", 1)


def get_smooth(s: dict):
  return s.get("prediction", {}).get("smooth", 0.0)


def get_mode(s: dict) -> str:
  return s.get("prediction", {}).get("mode", "value")


def get_cores(s: dict) -> int:
  return s.get("parallel", {}).get("cores", 1)


def get_backend(s: dict) -> str:
  return s.get("parallel", {}).get("backend", "loky")
