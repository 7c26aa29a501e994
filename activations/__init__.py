"""
Activations module - Domain activation ledger.

This module handles:
- Activation entity and domain logic
- Domain normalization and the exempt-domain allow-list
- Capacity accounting and idempotent re-activation
- Heartbeat validation and soft deactivation
"""
