from ._device import Device
from ._program_cache import ProgramCache

__all__ = [Device.__name__, ProgramCache.__name__]
