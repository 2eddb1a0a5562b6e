"""
Concrete compute device.

A `Device` names where accelerated programs run: a device type plus an
optional ``(platform_id, device_id)`` pair. Layers using the accelerated
engine are registered on a device, which compiles each distinct kernel
signature once through its `ProgramCache` and attaches the program to the
layer.

Accepted device strings are ``"cpu"``, ``"none"``, ``"gpu"`` and
``"<type>:<platform>:<device>"`` (e.g. ``"gpu:2:0"``).
"""

from __future__ import annotations

import re
import warnings
from typing import Any, Optional, Union

from ...domain._types import BackendType
from ...domain.device._device_protocol import DeviceType
from ._program_cache import ProgramCache


class Device:
    """
    Compute device descriptor with an owned program cache.

    Parameters
    ----------
    kind : DeviceType or str
        Device type, or a device string carrying the ids.
    platform_id, device_id : int, optional
        Platform and device ids; both are required to host programs.
    cache : ProgramCache, optional
        Program cache to use; a private one is created when omitted.

    Raises
    ------
    ValueError
        If the device string is malformed, ids are negative, or ids are given
        both in the string and as arguments.
    """

    __slots__ = ("type", "platform_id", "device_id", "_cache")

    _PATTERN = re.compile(r"^(cpu|gpu|none)(?::(\d+):(\d+))?$")

    def __init__(
        self,
        kind: Union[DeviceType, str] = DeviceType.CPU,
        platform_id: Optional[int] = None,
        device_id: Optional[int] = None,
        *,
        cache: Optional[ProgramCache] = None,
    ) -> None:
        if isinstance(kind, DeviceType):
            self.type = kind
        else:
            m = self._PATTERN.match(str(kind).strip().lower())
            if not m:
                raise ValueError(
                    f"Invalid device '{kind}'. Expected 'cpu', 'gpu', 'none' "
                    "or '<type>:<platform>:<device>'"
                )
            self.type = DeviceType(m.group(1))
            if m.group(2) is not None:
                if platform_id is not None or device_id is not None:
                    raise ValueError(
                        f"Device ids given twice: '{kind}' and ({platform_id}, {device_id})"
                    )
                platform_id, device_id = int(m.group(2)), int(m.group(3))

        if (platform_id is None) != (device_id is None):
            raise ValueError(
                "platform_id and device_id must be given together, got "
                f"({platform_id}, {device_id})"
            )
        if platform_id is not None and (platform_id < 0 or device_id < 0):
            raise ValueError(
                f"Device ids must be >= 0, got ({platform_id}, {device_id})"
            )
        self.platform_id = platform_id
        self.device_id = device_id
        self._cache = cache if cache is not None else ProgramCache()

    @property
    def cache(self) -> ProgramCache:
        return self._cache

    def is_cpu(self) -> bool:
        return self.type is DeviceType.CPU

    def has_ids(self) -> bool:
        return self.platform_id is not None and self.device_id is not None

    def _key(self) -> tuple:
        return (self.type, self.platform_id, self.device_id)

    def register_op(self, layer: Any) -> bool:
        """
        Compile (once) and attach the accelerated program of `layer`.

        Returns
        -------
        bool
            True if a program is attached, False otherwise. Every False return
            is accompanied by a `RuntimeWarning`.
        """
        if not self.has_ids():
            warnings.warn(
                f"Cannot register {layer.layer_type()} on device {self}: "
                "no platform/device ids.",
                RuntimeWarning,
                stacklevel=2,
            )
            return False
        if layer.engine is not BackendType.ACCELERATED:
            warnings.warn(
                f"Cannot register {layer.layer_type()} on device {self}: engine "
                f"'{layer.engine.value}' is not '{BackendType.ACCELERATED.value}'.",
                RuntimeWarning,
                stacklevel=2,
            )
            return False

        program = self._cache.get_or_compile(
            self._key(), layer.kernel_signature(), layer.create_program
        )
        if program is None:
            warnings.warn(
                f"{layer.layer_type()} has no program to compile on device {self}.",
                RuntimeWarning,
                stacklevel=2,
            )
            return False
        layer.attach_program(program)
        return True

    def num_programs_compiled(self) -> int:
        """Number of programs compiled for this device."""
        return self._cache.num_programs(self._key())

    def __str__(self) -> str:
        if self.has_ids():
            return f"{self.type.value}:{self.platform_id}:{self.device_id}"
        return self.type.value

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())
