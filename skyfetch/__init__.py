"""
skyfetch - resilient current-conditions weather fetching.
"""

__version__ = "0.1.0"
