"""
utils/ - Shared helpers
=======================
Logging setup used by every other layer.
"""
