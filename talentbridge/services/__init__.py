"""
Services module - business rules shared by the route handlers.
"""
