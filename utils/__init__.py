"""
Utilities: scenario loading and run logging.
"""
