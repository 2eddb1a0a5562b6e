"""
Stateless configuration mixin.

This module defines `StatelessConfigMixin` for components (activation
strategies, mostly) whose behavior is fully determined by their class.

It provides no-op serialization hooks so that stateless components take part
in layer configuration export and reconstruction without special cases.
"""

from typing import Any, Dict
from typing_extensions import Self


class StatelessConfigMixin:
    """
    Mixin providing configuration hooks for stateless components.
    """

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration dictionary.

        Returns
        -------
        Dict[str, Any]
            An empty configuration dictionary.
        """
        return {}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> Self:
        """
        Reconstruct the component from a configuration dictionary.

        The configuration is ignored and a default instance is returned.
        """
        return cls()
