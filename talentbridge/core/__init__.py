"""
Core module - configuration, logging and authentication.
"""
