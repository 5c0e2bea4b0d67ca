"""Infrastructure Layer — adapters for storage, OTP cache, email and logging.

Invariants:
    - Every adapter satisfies a Protocol from core/repository_protocols.py
    - Driver exceptions are mapped to StorageUnavailableError / EmailDispatchError
"""
