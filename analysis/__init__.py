"""
Analysis package: event log, run metrics and victim-policy comparison.
"""
