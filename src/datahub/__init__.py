"""
DataHub Analytics - statistical indicators for Indonesian national statistics.
"""

__version__ = "0.1.0"
