"""
Downloads module - Signed download links for product releases.

This module handles:
- Issuing and verifying time-boxed, HMAC-signed capability tokens
- Release lookup behind a storage port
"""
