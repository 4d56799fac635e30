"""
Auth module - Login, logout and session introspection.
"""
