"""
Models for the activations app.

The ORM model lives in the infrastructure layer; it is re-exported here
so Django discovers it.
"""
from activations.infrastructure.models import Activation  # noqa: F401
