"""
Notifications module - Per-user notifications and the expiry job.
"""
