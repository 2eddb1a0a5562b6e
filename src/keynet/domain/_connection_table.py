"""
Channel connectivity for convolution-like layers.

A `ConnectionTable` answers whether output channel ``o`` reads from input
channel ``i``. An empty table means every output reads every input.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


class ConnectionTable:
    """
    Boolean (in_channels x out_channels) connectivity matrix.

    Parameters
    ----------
    table : Sequence[bool], optional
        Flat row-major connectivity, ``table[i * cols + o]`` tells whether
        input channel ``i`` feeds output channel ``o``.
    rows : int
        Number of input channels.
    cols : int
        Number of output channels.

    Raises
    ------
    ValueError
        If the table length does not equal ``rows * cols``.
    """

    __slots__ = ("_connected", "rows", "cols")

    def __init__(
        self,
        table: Optional[Sequence[bool]] = None,
        rows: int = 0,
        cols: int = 0,
    ) -> None:
        if table is None:
            self._connected: Optional[np.ndarray] = None
            self.rows = 0
            self.cols = 0
            return
        flat = np.asarray(list(table), dtype=bool)
        if flat.size != rows * cols:
            raise ValueError(
                f"connection table has {flat.size} entries, expected {rows}x{cols}"
            )
        self._connected = flat.reshape(rows, cols)
        self.rows = int(rows)
        self.cols = int(cols)

    def is_empty(self) -> bool:
        return self._connected is None

    def is_connected(self, out_channel: int, in_channel: int) -> bool:
        """Return True if `out_channel` reads from `in_channel`."""
        if self._connected is None:
            return True
        return bool(self._connected[in_channel, out_channel])

    def as_mask(self, out_channels: int, in_channels: int) -> np.ndarray:
        """
        Return a ``(out_channels, in_channels)`` boolean mask.

        Raises
        ------
        ValueError
            If a non-empty table does not match the requested channel counts.
        """
        if self._connected is None:
            return np.ones((out_channels, in_channels), dtype=bool)
        if self._connected.shape != (in_channels, out_channels):
            raise ValueError(
                f"connection table is {self.rows}x{self.cols}, layer needs "
                f"{in_channels}x{out_channels}"
            )
        return self._connected.T.copy()

    def to_list(self) -> Optional[list[bool]]:
        if self._connected is None:
            return None
        return [bool(v) for v in self._connected.reshape(-1)]
