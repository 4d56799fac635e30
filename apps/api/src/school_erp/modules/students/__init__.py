"""
Students module - Class structure, class lists and promotions.
"""
