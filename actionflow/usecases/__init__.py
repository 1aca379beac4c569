"""Use-case layer for orchestrating the operator's task workflow.

Each module coordinates domain objects and ports without performing transport
I/O directly, preserving MVVM + Hexagonal boundaries.
"""
