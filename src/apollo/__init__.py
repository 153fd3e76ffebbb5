"""A.P.O.L.L.O. diary-to-toon backend."""

__version__ = "0.1.0"
