"""
sarwater - water time series from Sentinel-1 SAR backscatter.

Speckle-filter each image, threshold it into a water mask, count water pixels
over a region per acquisition, and browse the series interactively.
"""

__version__ = "0.1.0"
