"""
Introspection Module

Discovers the protobuf schema of a gRPC server through server reflection.
Supports:
- Service listing
- Lookup by symbol or by filename
- Transitive import resolution with one fetch per file
- Assembly into a DescriptorPool-backed SchemaRoot
"""

from .dependency_resolver import DependencyResolver
from .reflection_client import ReflectionClient

__all__ = [
    "DependencyResolver",
    "ReflectionClient",
]
