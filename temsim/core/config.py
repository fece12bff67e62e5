"""Module for the global configuration of *temsim*.

The configuration is a nested dictionary. It is built from the defaults shipped in
``temsim.yaml``, then YAML files found in ``~/.config/temsim`` (or the directory
named by the ``TEMSIM_CONFIG`` environment variable), then ``TEMSIM_`` prefixed
environment variables.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from typing import Any, Optional

import yaml
from dask.config import canonical_name, collect, update

no_default = "__no_default__"

ENV_PREFIX = "TEMSIM_"

PATH = os.environ.get(
    "TEMSIM_CONFIG", os.path.join(os.path.expanduser("~"), ".config", "temsim")
)

config: dict = {}

config_lock = threading.Lock()

defaults: list[Mapping] = []

_missing = object()


def _split_key(key: str) -> list[str]:
    return key.replace("__", ".").split(".")


def _lookup(d: dict, keys: list[str]) -> tuple[dict, str]:
    for key in keys[:-1]:
        key = canonical_name(key, d)
        d = d.setdefault(key, {})
    return d, canonical_name(keys[-1], d)


class set:
    """Set configuration values, restoring the previous values when used as a
    context manager.

    Parameters
    ----------
    arg : mapping, optional
        Configuration values keyed by dotted names, e.g. ``{"fftw.threads": 4}``.
    **kwargs :
        More values; a double underscore in a keyword separates nested keys.

    Examples
    --------
    >>> with config.set({"precision": "float64"}):
    ...     buffer = TransformBuffer(64, 64)
    """

    def __init__(
        self,
        arg: Optional[Mapping] = None,
        config: dict = config,
        lock: threading.Lock = config_lock,
        **kwargs,
    ):
        values = dict(arg or {})
        values.update(kwargs)

        self.config = config
        self._previous: list[tuple[list[str], Any]] = []

        with lock:
            for key, value in values.items():
                keys = _split_key(key)
                d, last = _lookup(config, keys)
                self._previous.append((keys, d.get(last, _missing)))
                d[last] = value

    def __enter__(self):
        return self.config

    def __exit__(self, type, value, traceback):
        with config_lock:
            for keys, previous in reversed(self._previous):
                d, last = _lookup(self.config, keys)
                if previous is _missing:
                    d.pop(last, None)
                else:
                    d[last] = previous


def collect_env(env: Optional[Mapping[str, str]] = None) -> dict:
    """Collect configuration from ``TEMSIM_`` prefixed environment variables.

    ``TEMSIM_FFTW__THREADS=4`` becomes ``{"fftw": {"threads": 4}}``. Values are
    parsed as YAML scalars.
    """
    if env is None:
        env = os.environ

    result: dict = {}
    for name, value in env.items():
        if not name.startswith(ENV_PREFIX) or name == "TEMSIM_CONFIG":
            continue

        keys = name[len(ENV_PREFIX) :].lower().split("__")
        d = result
        for key in keys[:-1]:
            d = d.setdefault(key, {})
        d[keys[-1]] = yaml.safe_load(value)

    return result


def refresh(config: dict = config, defaults: list[Mapping] = defaults, **kwargs):
    """
    Rebuild the configuration from the stored defaults, the YAML files in ``PATH``
    and the environment, discarding values set at runtime.
    """
    config.clear()

    for d in defaults:
        update(config, d, priority="old")

    update(config, collect(paths=kwargs.pop("paths", [PATH]), env={}))
    update(config, collect_env(kwargs.pop("env", None)))


def get(
    key: str,
    default: Any = no_default,
    config: dict = config,
    override_with: Any = None,
) -> Any:
    """
    Get a configuration value by its dotted name, e.g. ``"fftw.threads"``.

    If ``override_with`` is not None it is returned instead, so function arguments
    can fall back to the configuration.
    """
    if override_with is not None:
        return override_with

    result = config
    for key_part in key.split("."):
        try:
            result = result[canonical_name(key_part, result)]
        except (TypeError, KeyError):
            if default is no_default:
                raise
            return default
    return result


def update_defaults(
    new: Mapping, config: dict = config, defaults: list[Mapping] = defaults
):
    """Add a set of defaults, kept for later calls to ``refresh``. Existing values
    take priority."""
    defaults.append(new)
    update(config, new, priority="old")


def _initialize():
    fn = os.path.join(os.path.dirname(os.path.dirname(__file__)), "temsim.yaml")

    with open(fn) as f:
        update_defaults(yaml.safe_load(f))


refresh()
_initialize()
