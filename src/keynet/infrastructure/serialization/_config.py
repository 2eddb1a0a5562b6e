"""
Layer architecture (de)serialization.

Layer classes register themselves under their serialized type name with
`@register_layer(...)`. `layer_to_config` captures a layer's constructor
configuration; `layer_from_config` rebuilds an equivalent (freshly
initialized) layer.

Node format
-----------
    {"type": "ConvolutionalLayer", "config": {...}}
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

_LAYER_REGISTRY: Dict[str, Type[Any]] = {}


def register_layer(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a layer class for configuration round-trips.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _LAYER_REGISTRY[key] = cls
        cls._serialized_name = key
        return cls

    return deco


def layer_to_config(layer: Any) -> Dict[str, Any]:
    """
    Convert a layer into a JSON-serializable configuration node.

    Raises
    ------
    ValueError
        If the layer class was not registered.
    """
    key = getattr(type(layer), "_serialized_name", None)
    if key is None or _LAYER_REGISTRY.get(key) is not type(layer):
        raise ValueError(
            f"Layer class '{type(layer).__name__}' is not registered. "
            "Register it via @register_layer."
        )
    return {"type": key, "config": layer.get_config()}


def layer_from_config(node: Dict[str, Any]) -> Any:
    """
    Rebuild a layer from a configuration node.

    Raises
    ------
    ValueError
        If the type name is unknown.
    """
    type_name = str(node["type"])
    if type_name not in _LAYER_REGISTRY:
        raise ValueError(
            f"Unknown layer type '{type_name}'. Register it via @register_layer."
        )
    cls = _LAYER_REGISTRY[type_name]
    return cls.from_config(dict(node.get("config", {}) or {}))
