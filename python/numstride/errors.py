"""Exception types raised by numstride.

Invalid arguments raise the builtin ``ValueError``; the classes below refine
it for the two failure kinds callers may want to tell apart.
"""


class ShapeError(ValueError):
    """Two shapes cannot be aligned by the broadcasting rule."""

    def __init__(self, shape1: tuple[int, ...], shape2: tuple[int, ...]) -> None:
        self.shape1 = tuple(shape1)
        self.shape2 = tuple(shape2)
        super().__init__(
            f"operands could not be broadcast together with shapes "
            f"{self.shape1} {self.shape2}"
        )


class ConfigError(ValueError):
    """A configuration value was rejected."""
