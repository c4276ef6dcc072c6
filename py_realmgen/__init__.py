"""Procedural world generation: terrain, realms, cultures and diplomacy."""

__version__ = "0.1.0"
