"""
Base64 array payloads.

Parameter streams store values as base64 text so that a whole layer can be
written as one JSON document without losing float precision.
"""

from __future__ import annotations

import base64
from typing import Any, Dict

import numpy as np


def bytes_to_b64_str(b: bytes) -> str:
    """Encode raw bytes into a base64 ASCII string (JSON-safe)."""
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    return base64.b64decode(s.encode("ascii"))


def ndarray_to_payload(arr: np.ndarray) -> Dict[str, Any]:
    """
    Serialize a NumPy ndarray into a JSON-safe payload.

    Returns
    -------
    dict
        ``{"b64": <base64>, "dtype": <numpy dtype str>, "count": <n>}``.
        Values are stored flat in C order; the caller records the logical
        shape.
    """
    a = np.ascontiguousarray(arr).reshape(-1)
    return {
        "b64": bytes_to_b64_str(a.tobytes(order="C")),
        "dtype": a.dtype.str,
        "count": int(a.size),
    }


def payload_to_ndarray(payload: Dict[str, Any]) -> np.ndarray:
    """
    Deserialize a payload back into an owning flat ndarray.

    Raises
    ------
    ValueError
        If the decoded element count differs from the recorded count.
    """
    b = b64_str_to_bytes(str(payload["b64"]))
    arr = np.frombuffer(b, dtype=np.dtype(str(payload["dtype"])))
    count = int(payload.get("count", arr.size))
    if arr.size != count:
        raise ValueError(
            f"corrupt payload: decoded {arr.size} values, header says {count}"
        )
    return np.array(arr, copy=True)
