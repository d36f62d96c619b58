"""
Schema Assembler - Builds a queryable descriptor pool from resolved fragments.

Supports:
- Dependency-ordered loading into a private DescriptorPool
- Lookup of files, messages, enums, services and arbitrary symbols
- Dynamic message classes for resolved message types
- Export back to a FileDescriptorSet
"""

import logging
from typing import List

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from reflector.errors import SchemaBuildError
from reflector.schema.models import FragmentRegistry

logger = logging.getLogger(__name__)


class SchemaRoot:
    """Fully assembled schema of one reflection lookup"""

    def __init__(self, pool: descriptor_pool.DescriptorPool, files: List[descriptor_pb2.FileDescriptorProto]):
        self.pool = pool
        self._files = list(files)

    @property
    def file_names(self) -> List[str]:
        """File names in dependency order"""
        return [proto.name for proto in self._files]

    def find_file(self, name: str):
        return self.pool.FindFileByName(name)

    def find_message_type(self, full_name: str):
        return self.pool.FindMessageTypeByName(full_name)

    def find_enum_type(self, full_name: str):
        return self.pool.FindEnumTypeByName(full_name)

    def find_service(self, full_name: str):
        return self.pool.FindServiceByName(full_name)

    def find_symbol(self, full_name: str):
        """Return the file descriptor that defines a symbol"""
        return self.pool.FindFileContainingSymbol(full_name)

    def service_names(self) -> List[str]:
        """All services declared across the schema, in file order"""
        names = []
        for proto in self._files:
            prefix = f"{proto.package}." if proto.package else ""
            names.extend(f"{prefix}{service.name}" for service in proto.service)
        return names

    def message_class(self, full_name: str):
        """Return a concrete message class for a resolved message type"""
        return message_factory.GetMessageClass(self.find_message_type(full_name))

    def to_file_descriptor_set(self) -> descriptor_pb2.FileDescriptorSet:
        descriptor_set = descriptor_pb2.FileDescriptorSet()
        descriptor_set.file.extend(self._files)
        return descriptor_set


class SchemaAssembler:
    """Loads a closed FragmentRegistry into a fresh DescriptorPool"""

    def assemble(self, registry: FragmentRegistry) -> SchemaRoot:
        """
        Build a SchemaRoot from a registry

        Args:
            registry: Registry closed under dependency

        Returns:
            SchemaRoot backed by a private DescriptorPool

        Raises:
            SchemaBuildError: If the registry is not closed or a file is rejected
        """
        if not registry.is_closed():
            missing = registry.missing_dependencies()
            raise SchemaBuildError(f"Cannot assemble schema, missing files: {', '.join(missing)}")

        pool = descriptor_pool.DescriptorPool()
        files = []
        for fragment in registry.ordered():
            try:
                pool.AddSerializedFile(fragment.proto.SerializeToString())
            except (TypeError, KeyError, ValueError) as e:
                raise SchemaBuildError(f"Could not load {fragment.name}: {e}") from e
            files.append(fragment.proto)

        logger.debug(f"Assembled schema with {len(files)} files")
        return SchemaRoot(pool, files)
