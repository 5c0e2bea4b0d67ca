"""Services Layer — token authority, message routing and event fan-out.

Invariants:
    - Services depend on core/ protocols, never on concrete adapters
    - Dependency order: TokenAuthority → MessageRouter → EventHub
"""
