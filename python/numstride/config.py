"""Package-wide settings.

``CONF`` is read at call time by array creation (default dtype) and by the
string formatting of arrays, so changes apply to every subsequent call.
"""

import contextlib
import dataclasses
from collections.abc import Iterator
from typing import Any

from loguru import logger

from .errors import ConfigError


@dataclasses.dataclass
class Config:
    """Mutable settings shared by the whole package.

    Attributes
    ----------
    print_threshold : int
        Number of elements per axis shown before the middle is elided when an
        array is printed.
    n_floating_values : int
        Number of digits printed after the decimal point.
    default_dtype : str
        dtype tag used when creation functions are called without one.
    """

    print_threshold: int = 7
    n_floating_values: int = 5
    default_dtype: str = "array"

    def update(self, **kwargs: Any) -> None:
        """Validate and apply new values.

        Raises
        ------
        ConfigError
            If a key is unknown or a value is invalid. Nothing is applied in
            that case.
        """
        fields = {f.name for f in dataclasses.fields(self)}
        for key, value in kwargs.items():
            if key not in fields:
                raise ConfigError(f"unknown configuration key {key!r}")
            self._validate(key, value)
        for key, value in kwargs.items():
            logger.debug("config {} = {!r}", key, value)
            setattr(self, key, value)

    @staticmethod
    def _validate(key: str, value: Any) -> None:
        if key in ("print_threshold", "n_floating_values"):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{key} must be a non-negative int, got {value!r}")
        elif key == "default_dtype":
            from .dtypes import DTYPES

            if value not in DTYPES:
                raise ConfigError(
                    f"default_dtype must be one of {sorted(DTYPES)}, got {value!r}"
                )


CONF = Config()


@contextlib.contextmanager
def override(**kwargs: Any) -> Iterator[Config]:
    """Temporarily change settings, restoring the previous values on exit."""
    previous = {key: getattr(CONF, key) for key in kwargs if hasattr(CONF, key)}
    CONF.update(**kwargs)
    try:
        yield CONF
    finally:
        CONF.update(**previous)
