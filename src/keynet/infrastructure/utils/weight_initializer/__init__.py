"""
Weight initializers.

Importing this package registers the built-in strategies with
`WeightInitializer`: the fan-scaled random ones ("xavier", "xavier_normal",
"lecun", "he", "kaiming", "gaussian") and the constant ones ("constant",
"zeros", "ones").
"""

from ._xavier import *
from ._constants import *
from ._base import WeightInitializer

__all__ = [
    WeightInitializer.__name__,
]
