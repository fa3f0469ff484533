"""
Mystic Alert CLI command implementations.
"""
