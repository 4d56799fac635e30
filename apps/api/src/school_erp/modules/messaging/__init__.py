"""
Messaging module - Conversations between platform and school staff.
"""
