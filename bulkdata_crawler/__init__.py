"""
bulkdata_crawler – mirror the GPO FDsys bulk-data listing into per-file
tar envelopes, re-downloading only files whose Last-Modified changed.
"""

__version__ = "1.0.0"
