from . import screenshot

__all__ = ['screenshot']
