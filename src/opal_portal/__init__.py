"""
Read Opal card balances and trip history from the Opal web portal.
"""

__version__ = "0.3.0"
