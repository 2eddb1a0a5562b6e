"""
Parameter stream persistence.

A layer's parameters are saved as a JSON-safe document tagged with the
layer's type string:

    {
      "layer_type": "conv",
      "parameters": [
        {"role": "weight", "shape": [w, h, d, maps], "b64": ..., "dtype": ..., "count": n},
        {"role": "bias",   ...}
      ]
    }

Values are the flat parameter data in ``(width, height, depth, maps)``
order. Loading checks the layer type first, then the parameter count, roles
and shapes, and only writes once everything matches, so a rejected stream
leaves the layer untouched.
"""

from __future__ import annotations

import json
from typing import Any, Dict, IO

from ...domain._errors import ContractViolationError, LayerTypeMismatchError
from ..encoding._b64 import ndarray_to_payload, payload_to_ndarray


def save_parameters(layer: Any) -> Dict[str, Any]:
    """Return the parameter document of `layer`."""
    params = []
    for p in layer.parameters():
        entry = {"role": p.type.value, "shape": list(p.shape)}
        entry.update(ndarray_to_payload(p.data.data))
        params.append(entry)
    return {"layer_type": layer.layer_type(), "parameters": params}


def load_parameters(layer: Any, doc: Dict[str, Any]) -> None:
    """
    Restore parameters from a document produced by `save_parameters`.

    Raises
    ------
    LayerTypeMismatchError
        If the stream was saved by a different layer type.
    ContractViolationError
        If parameter count, role or shape differ.
    """
    got = str(doc.get("layer_type", ""))
    if got != layer.layer_type():
        raise LayerTypeMismatchError(layer.layer_type(), got)

    params = layer.parameters()
    entries = list(doc.get("parameters", []))
    if len(entries) != len(params):
        raise ContractViolationError(
            f"{layer.layer_type()}: stream holds {len(entries)} parameters, "
            f"layer has {len(params)}"
        )

    values = []
    for p, entry in zip(params, entries):
        if entry.get("role") != p.type.value:
            raise ContractViolationError(
                f"{layer.layer_type()}: expected {p.type.value} parameter, "
                f"stream holds {entry.get('role')!r}"
            )
        if tuple(int(d) for d in entry.get("shape", ())) != p.shape:
            raise ContractViolationError(
                f"{layer.layer_type()}: {p.type.value} shape {tuple(entry.get('shape', ()))} "
                f"does not match {p.shape}"
            )
        values.append(payload_to_ndarray(entry))

    for p, v in zip(params, values):
        p.set_data(v)


def save_to_stream(layer: Any, stream: IO[str]) -> None:
    json.dump(save_parameters(layer), stream)


def load_from_stream(layer: Any, stream: IO[str]) -> None:
    load_parameters(layer, json.load(stream))
