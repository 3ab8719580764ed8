"""Request encoding for Medtronic 600-series pumps via the Contour Next Link 2.4."""

__version__ = "0.1.0"
