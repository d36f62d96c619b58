"""
Dependency Resolver - Expands fragments into their full transitive closure.

Starting from the fragments of one lookup, every imported file that is not yet
known is fetched by filename and resolved the same way. The registry built
along the way is shared by every level of the walk, and a file is fetched at most
once per resolve() call even when imports form a cycle.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from reflector.errors import ProtocolError
from reflector.schema.models import DecodedFragment, FragmentRegistry, decode_fragment

logger = logging.getLogger(__name__)


@dataclass
class _Batch:
    """Fragments of one response and how far their imports have been walked"""

    fragments: List[DecodedFragment]
    position: int = 0
    dependency_index: int = 0


class DependencyResolver:
    """Resolves raw fragments into a registry closed under dependency"""

    def __init__(self, fetcher):
        """
        Args:
            fetcher: Object with a fetch_by_filename(name) -> List[bytes] method
        """
        self.fetcher = fetcher

    def resolve(self, raw_fragments: Iterable[bytes]) -> FragmentRegistry:
        """
        Resolve fragments and everything they import

        Args:
            raw_fragments: Serialized FileDescriptorProto records

        Returns:
            FragmentRegistry containing the roots and all transitive imports

        Raises:
            DecodeError: If any fragment cannot be decoded
            ProtocolError: If the server never supplies an imported file
            TransportError: If any fetch fails on the channel
        """
        registry = FragmentRegistry()
        self._resolve_batch(list(raw_fragments), registry)

        missing = registry.missing_dependencies()
        if missing:
            raise ProtocolError(f"Server did not provide imported files: {', '.join(missing)}")

        logger.debug(f"Resolved {len(registry)} fragments")
        return registry

    def _resolve_batch(self, raw_fragments: List[bytes], registry: FragmentRegistry) -> None:
        # One open batch per level of imports being fetched
        stack = [self._open_batch(raw_fragments, registry)]

        while stack:
            batch = stack[-1]
            if batch.position >= len(batch.fragments):
                stack.pop()
                continue

            fragment = batch.fragments[batch.position]
            if batch.dependency_index < len(fragment.dependencies):
                dependency = fragment.dependencies[batch.dependency_index]
                batch.dependency_index += 1
                if registry.is_known(dependency):
                    continue
                registry.mark_pending(dependency)
                logger.debug(f"{fragment.name} imports {dependency}, fetching")
                stack.append(self._open_batch(self.fetcher.fetch_by_filename(dependency), registry))
                continue

            if not registry.add(fragment):
                logger.debug(f"Skipping duplicate fragment {fragment.name}")
            batch.position += 1
            batch.dependency_index = 0

    def _open_batch(self, raw_fragments: List[bytes], registry: FragmentRegistry) -> _Batch:
        fragments = [decode_fragment(raw) for raw in raw_fragments]

        # Files bundled in the same response must not be fetched again
        for fragment in fragments:
            registry.mark_pending(fragment.name)

        return _Batch(fragments)
