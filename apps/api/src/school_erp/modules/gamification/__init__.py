"""
Gamification module - Points, levels and the activity log.
"""
