"""binswap — reversible replacement of a system-resident executable."""

__version__ = "0.1.0"
