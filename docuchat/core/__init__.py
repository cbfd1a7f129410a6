"""
Core Utilities
"""
