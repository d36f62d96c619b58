"""
Reflection Client - Discovers the protobuf schema of a running gRPC server.

Features:
- Listing of services exposed through server reflection
- Schema lookup by fully-qualified symbol or by proto filename
- Transitive resolution of imported files, each fetched once per lookup
- Assembly into a queryable descriptor pool
"""

import logging
from typing import List, Optional, Sequence, Tuple

import grpc

from reflector.api.fragment_fetcher import FragmentFetcher, check_response
from reflector.api.reflection_session import LIST_SERVICES, ReflectionSession, build_request
from reflector.introspection.dependency_resolver import DependencyResolver
from reflector.schema.assembler import SchemaAssembler, SchemaRoot
from reflector.schema.models import FragmentRegistry

logger = logging.getLogger(__name__)


class ReflectionClient:
    """
    Introspects a gRPC server through the server reflection service

    Usage:
    ```python
    client = ReflectionClient("localhost:50051")
    print(client.list_services())
    schema = client.resolve_by_symbol("helloworld.Greeter")
    print(schema.find_service("helloworld.Greeter").methods_by_name.keys())
    ```
    """

    # Pattern the reflection service interprets as "all services"
    LIST_ALL_PATTERN = "*"

    def __init__(
        self,
        target: str,
        credentials: Optional[grpc.ChannelCredentials] = None,
        options: Optional[Sequence[Tuple[str, object]]] = None,
        metadata: Optional[Sequence[Tuple[str, str]]] = None,
        timeout: Optional[float] = None,
        session=None,
    ):
        """
        Initialize reflection client

        Args:
            target: Server address (e.g., localhost:50051)
            credentials: Channel credentials, None for a plaintext channel
            options: grpc channel options
            metadata: Request metadata sent with every reflection call
            timeout: Per-call deadline in seconds
            session: Ready-made session to use instead of opening a channel
        """
        self.target = target
        self.session = session or ReflectionSession(
            target,
            credentials=credentials,
            options=options,
            metadata=metadata,
            timeout=timeout,
        )
        self.fetcher = FragmentFetcher(self.session)
        self.assembler = SchemaAssembler()

    @classmethod
    def from_config(cls, config) -> "ReflectionClient":
        """Create a client from a ReflectionConfig"""
        return cls(
            config.target,
            credentials=config.credentials(),
            metadata=config.metadata_pairs(),
            timeout=config.timeout,
        )

    def list_services(self) -> List[str]:
        """
        List the fully-qualified names of all services the server exposes

        Returns:
            Service names in the order the server reported them

        Raises:
            RemoteReflectionError: If the server answered with an error
            ProtocolError: If the server answered with anything else
            TransportError: If the call failed
        """
        response = self.session.exchange(build_request(LIST_SERVICES, self.LIST_ALL_PATTERN))
        payload = check_response(response, "list_services_response")
        services = [service.name for service in payload.service]

        logger.info(f"Found {len(services)} services on {self.target}")
        return services

    def resolve_registry_by_symbol(self, symbol: str) -> FragmentRegistry:
        """Resolve the files needed by a symbol without assembling them"""
        return DependencyResolver(self.fetcher).resolve(self.fetcher.fetch_by_symbol(symbol))

    def resolve_registry_by_filename(self, filename: str) -> FragmentRegistry:
        """Resolve a file and its imports without assembling them"""
        return DependencyResolver(self.fetcher).resolve(self.fetcher.fetch_by_filename(filename))

    def resolve_by_symbol(self, symbol: str) -> SchemaRoot:
        """
        Resolve the complete schema of the file defining a symbol

        Args:
            symbol: Fully-qualified name (e.g., helloworld.Greeter)

        Returns:
            SchemaRoot with the defining file and all its imports
        """
        registry = self.resolve_registry_by_symbol(symbol)
        logger.info(f"Resolved {len(registry)} files for symbol {symbol}")
        return self.assembler.assemble(registry)

    def resolve_by_filename(self, filename: str) -> SchemaRoot:
        """
        Resolve the complete schema of a proto file

        Args:
            filename: Proto path as known to the server (e.g., helloworld.proto)

        Returns:
            SchemaRoot with the file and all its imports
        """
        registry = self.resolve_registry_by_filename(filename)
        logger.info(f"Resolved {len(registry)} files for {filename}")
        return self.assembler.assemble(registry)

    def close(self) -> None:
        """Close the underlying session"""
        self.session.close()

    def __enter__(self) -> "ReflectionClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
