"""TownSpot: find what's on in your town."""

__version__ = "0.1.0"
