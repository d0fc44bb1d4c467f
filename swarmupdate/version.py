"""Version information for swarmupdate."""

__version__ = "0.1.0"
