"""tileunzoom - build lower-zoom levels of a zoom/x/y tile pyramid."""

__version__ = "0.1.0"
