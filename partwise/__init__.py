"""
partwise - rule-driven partition sorting and package export for shared
design models.
"""

__version__ = "0.3.0"
