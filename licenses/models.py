"""
Models for the licenses app.

The ORM model lives in the infrastructure layer; it is re-exported here
so Django discovers it.
"""
from licenses.infrastructure.models import License  # noqa: F401
