"""Use-case layer for the update check, download, and deployment workflow.

Each module coordinates domain objects and ports without performing transport
I/O directly, preserving the hexagonal boundaries.
"""
