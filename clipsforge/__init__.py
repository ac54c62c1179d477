"""ClipsForge - turn long-form videos into scheduled social clips."""

from clipsforge.version import __version__

__all__ = ["__version__"]
