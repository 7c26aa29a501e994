"""
Licenses module - License keys and license lifecycle.

This module handles:
- License entity and effective status
- License key generation, hashing and verification
- Administrative lifecycle (suspend, revoke, deactivate, reactivate, renew)
"""
