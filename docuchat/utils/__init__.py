"""
Shared helpers: format detection, retry, error handling, log sanitizing
"""
