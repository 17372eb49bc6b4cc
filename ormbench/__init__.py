"""
ormbench - synthetic OLTP/OLAP data generator and access-layer benchmark
"""

__version__ = "1.0.0"
