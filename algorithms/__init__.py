"""
Algorithms package for the Resource-Allocation Graph Deadlock Engine.
Contains deadlock detection, victim-selection recovery and the risk heuristic.
"""
