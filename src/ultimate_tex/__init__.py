"""Convert textures between raster images, DDS, Nutexb and BNTX"""

__version__ = "0.1.0"
