"""GrocEazy order and inventory backend."""

__version__ = "1.0.0"
