"""Scale library - the read-only handpan scale catalogue."""

from .scales import ScaleDefinition, ScaleLibrary, default_library

__all__ = [
    "ScaleDefinition",
    "ScaleLibrary",
    "default_library",
]
