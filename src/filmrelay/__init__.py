"""filmrelay: cross-source stream resolution for Stremio-style addons."""

__version__ = "0.1.0"
