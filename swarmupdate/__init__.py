"""Swarm based fetcher for signed update packages."""

from swarmupdate.version import __version__

__all__ = ["__version__"]
