"""
Vimarsha - track-fittings lifecycle web front-end
"""

__version__ = "1.0.0"
