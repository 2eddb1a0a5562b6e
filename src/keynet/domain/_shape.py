"""
Spatial shape descriptors.

`Shape3D` describes a (width, height, depth) volume stored channel-major:
the flat index of element ``(x, y, c)`` is ``c*width*height + y*width + x``.
Every spatial layer in KeyNet relies on this linearization.

This module also defines the `Padding` mode shared by convolution, deconvolution
and pooling, and the helper that derives output lengths from it.
"""

from __future__ import annotations

from enum import Enum
import math

from ._errors import ContractViolationError


class Padding(Enum):
    """
    Border handling for windowed operations.

    Attributes
    ----------
    VALID : Padding
        Only positions where the window fits entirely inside the input.
    SAME : Padding
        Input is zero-padded so that ``out = ceil(in / stride)``.
    """

    VALID = "valid"
    SAME = "same"

    @classmethod
    def parse(cls, value: "Padding | str") -> "Padding":
        """Accept a `Padding` member or its string value."""
        if isinstance(value, Padding):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            raise ValueError(
                f"Invalid padding {value!r}. Expected 'valid' or 'same'"
            ) from e


def conv_out_length(
    in_length: int, window_size: int, stride: int, padding: Padding
) -> int:
    """
    Compute the output length of a windowed operation along one axis.

    Parameters
    ----------
    in_length : int
        Input length along the axis.
    window_size : int
        Window (kernel) length along the axis.
    stride : int
        Step between window positions.
    padding : Padding
        Border mode.

    Returns
    -------
    int
        ``(in - window) // stride + 1`` for VALID, ``ceil(in / stride)`` for
        SAME.
    """
    if padding is Padding.SAME:
        return int(math.ceil(in_length / stride))
    return (in_length - window_size) // stride + 1


class Shape3D:
    """
    Three-dimensional (width, height, depth) shape.

    Parameters
    ----------
    width, height, depth : int
        Non-negative extents.

    Notes
    -----
    A default-constructed shape has size 0. Layers that support shape
    inference use such an empty shape as their "not yet known" input.
    """

    __slots__ = ("width", "height", "depth")

    def __init__(self, width: int = 0, height: int = 0, depth: int = 0) -> None:
        if width < 0 or height < 0 or depth < 0:
            raise ValueError(
                f"Shape3D extents must be >= 0, got ({width}, {height}, {depth})"
            )
        self.width = int(width)
        self.height = int(height)
        self.depth = int(depth)

    def area(self) -> int:
        """Return ``width * height``."""
        return self.width * self.height

    def size(self) -> int:
        """Return ``width * height * depth``."""
        return self.width * self.height * self.depth

    def get_index(self, x: int, y: int, c: int) -> int:
        """
        Flat index of ``(x, y, c)``.

        Raises
        ------
        ContractViolationError
            If any coordinate is out of range.
        """
        if not (0 <= x < self.width and 0 <= y < self.height and 0 <= c < self.depth):
            raise ContractViolationError(
                f"({x}, {y}, {c}) is out of range for shape {self}"
            )
        return (self.height * c + y) * self.width + x

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.width, self.height, self.depth)

    def __iter__(self):
        return iter(self.as_tuple())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shape3D):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self) -> int:
        return hash(("Shape3D",) + self.as_tuple())

    def __str__(self) -> str:
        return f"{self.width}x{self.height}x{self.depth}"

    def __repr__(self) -> str:
        return f"Shape3D({self.width}, {self.height}, {self.depth})"
