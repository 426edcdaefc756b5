"""Dark-sky spot finder: raster-based candidate search ranked by darkness and road access."""

__version__ = "0.1.0"
