"""
Mystic Alert services.
"""
