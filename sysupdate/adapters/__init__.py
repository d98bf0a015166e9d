"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations for domain ports: the HTTP update feed
    and artifact transport, the in-process cache and deployment lock, JSON/JSONL
    stores for settings, history, and audit, filesystem backups, subprocess
    maintenance tasks, and the local health probe.

Dependencies:
    Individual submodules depend on ``requests``, filesystem and subprocess
    APIs, and domain protocol definitions.

Call context:
    Imported by ``sysupdate.app.main`` (runtime wiring) and by tests.
"""
