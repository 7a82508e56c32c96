"""
Models package for the Resource-Allocation Graph Deadlock Engine.
Contains processes, resources, the allocation graph and engine errors.
"""
