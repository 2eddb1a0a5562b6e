from ._activation_layer import ActivationLayer
from ._convolutional import ConvolutionalLayer, DeconvolutionalLayer
from ._fully_connected import FullyConnectedLayer
from ._layer import Layer, connect, connection_mismatch
from ._lrn import LRNLayer, NormRegion
from ._max_pooling import MaxPoolingLayer

__all__ = [
    Layer.__name__,
    connect.__name__,
    connection_mismatch.__name__,
    FullyConnectedLayer.__name__,
    ConvolutionalLayer.__name__,
    DeconvolutionalLayer.__name__,
    MaxPoolingLayer.__name__,
    LRNLayer.__name__,
    NormRegion.__name__,
    ActivationLayer.__name__,
]
