"""Core Layer — domain types, errors, validators and boundary protocols.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Validators are pure: no IO, no async
"""
