"""
Device abstraction contracts for KeyNet.

This module defines the `DeviceType` enumeration and a duck-typed
`DeviceLike` protocol describing a computation device descriptor without
coupling callers to the concrete `Device` class.

Design notes
------------
- Uses `typing.Protocol` and `@runtime_checkable` to enable both static and
  runtime validation of device-like objects.
- A device is identified by its type plus an optional (platform, device)
  id pair. Devices lacking ids cannot host compiled programs.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class DeviceType(Enum):
    """
    Enumeration of supported device categories.

    Attributes
    ----------
    CPU : DeviceType
        Host processor.
    GPU : DeviceType
        Accelerator device addressed by platform/device ids.
    NONE : DeviceType
        Placeholder for "no device selected".
    """

    CPU = "cpu"
    GPU = "gpu"
    NONE = "none"


@runtime_checkable
class DeviceLike(Protocol):
    """
    Duck-typed device contract.

    Any object that provides these members can be attached to a layer.
    """

    type: DeviceType
    platform_id: Optional[int]
    device_id: Optional[int]

    def is_cpu(self) -> bool: ...
    def has_ids(self) -> bool: ...
    def register_op(self, layer: object) -> bool: ...
    def __str__(self) -> str: ...
