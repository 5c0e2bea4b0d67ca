"""Parley Application Package — passwordless messaging backend.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
