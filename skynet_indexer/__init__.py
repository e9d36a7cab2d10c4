"""
Skynet indexer - correlates GPU job submissions with their confirmations.
"""

__version__ = "1.0.0"
