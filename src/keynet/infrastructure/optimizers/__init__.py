from ._adaptive import Adagrad, RMSprop
from ._adam import Adam
from ._sgd import SGD, Momentum

__all__ = [
    SGD.__name__,
    Momentum.__name__,
    Adagrad.__name__,
    RMSprop.__name__,
    Adam.__name__,
]
