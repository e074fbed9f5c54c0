from .actions import Action, BaseAction, Identify, Track, clean_properties
from .batch import Batch

__all__ = [
    "Action",
    "BaseAction",
    "Identify",
    "Track",
    "clean_properties",
    "Batch",
]
