"""patroniglue — cached HTTP health facade for Patroni."""

__version__ = "1.0.0"
