"""
Activation strategies.

Importing this package registers the built-in strategies (identity, sigmoid,
tanh, relu, leaky_relu, elu, selu, softmax) so they can be looked up by name
through `get_activation`.
"""

from ._base import (
    Activation,
    activation_to_config,
    available_activations,
    get_activation,
    register_activation,
)
from ._functions import ELU, SELU, Identity, LeakyReLU, ReLU, Sigmoid, Softmax, Tanh

__all__ = [
    Activation.__name__,
    activation_to_config.__name__,
    available_activations.__name__,
    get_activation.__name__,
    register_activation.__name__,
    Identity.__name__,
    Sigmoid.__name__,
    Tanh.__name__,
    ReLU.__name__,
    LeakyReLU.__name__,
    ELU.__name__,
    SELU.__name__,
    Softmax.__name__,
]
