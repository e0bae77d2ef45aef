"""
PyIsobar is a pure python library to find the El Torito boot image on a
bootable CD (or an image of one), work out how big it is, and extract it.
"""
from .pyisobar import PyIsobar  # NOQA
