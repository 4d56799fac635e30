"""
Registrations module - Registration/submission workflow for shared resources.
"""
