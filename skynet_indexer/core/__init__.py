"""
Correlation core: identity hashing, pending cache, correlation engine and join search.
"""
