"""
Dashboard module - Role-aware summary counts.
"""
