"""
Core module for shared domain infrastructure.

This module contains:
- Domain events and exceptions
- Engine configuration and secret provisioning
- Rate limiting, cache and storage adapters
- Middleware components
"""
