"""Models for schema fragments returned by a reflection server."""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError as ProtobufDecodeError

from reflector.errors import DecodeError


@dataclass
class DecodedFragment:
    """A single decoded .proto file and the files it imports."""

    name: str
    dependencies: List[str] = field(default_factory=list)
    proto: descriptor_pb2.FileDescriptorProto = field(
        default_factory=descriptor_pb2.FileDescriptorProto, repr=False
    )


def decode_fragment(raw: bytes) -> DecodedFragment:
    """
    Decode one serialized FileDescriptorProto

    Raises:
        DecodeError: If the bytes are empty, malformed or carry no file name
    """
    if not raw:
        raise DecodeError("Empty fragment received")

    try:
        proto = descriptor_pb2.FileDescriptorProto.FromString(raw)
    except ProtobufDecodeError as e:
        raise DecodeError(f"Malformed fragment ({len(raw)} bytes): {e}") from e

    if not proto.name:
        raise DecodeError("Fragment has no file name")

    return DecodedFragment(name=proto.name, dependencies=list(proto.dependency), proto=proto)


class FragmentRegistry:
    """
    Deduplicated set of decoded fragments keyed by file name

    Names whose fetch has been started but whose fragment is not inserted yet
    are tracked as pending, so a dependency cycle never triggers a second fetch.
    """

    def __init__(self):
        self._fragments: Dict[str, DecodedFragment] = {}
        self._pending: Set[str] = set()

    def __contains__(self, name: str) -> bool:
        return name in self._fragments

    def __len__(self) -> int:
        return len(self._fragments)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fragments)

    def get(self, name: str) -> Optional[DecodedFragment]:
        """Return fragment by file name."""
        return self._fragments.get(name)

    def names(self) -> List[str]:
        """Return file names in first-seen order."""
        return list(self._fragments)

    def mark_pending(self, name: str) -> None:
        """Record that a fragment is being resolved."""
        if name not in self._fragments:
            self._pending.add(name)

    def is_known(self, name: str) -> bool:
        """True when the fragment is inserted or already being resolved."""
        return name in self._fragments or name in self._pending

    def add(self, fragment: DecodedFragment) -> bool:
        """Insert fragment unless present. Returns True if it was inserted."""
        self._pending.discard(fragment.name)
        if fragment.name in self._fragments:
            return False
        self._fragments[fragment.name] = fragment
        return True

    def missing_dependencies(self) -> List[str]:
        """Return dependency names that no inserted fragment provides."""
        missing = []
        for fragment in self._fragments.values():
            for dependency in fragment.dependencies:
                if dependency not in self._fragments and dependency not in missing:
                    missing.append(dependency)
        return missing

    def is_closed(self) -> bool:
        """True when every dependency of every fragment is present."""
        return not self.missing_dependencies()

    def ordered(self) -> List[DecodedFragment]:
        """
        Materialize fragments with each one placed after its dependencies

        Walks fragments in first-seen order, depth-first through their
        dependencies. A cycle is cut where it closes.
        """
        result: List[DecodedFragment] = []
        visited: Set[str] = set()

        for root in self._fragments:
            if root in visited:
                continue
            visited.add(root)
            # (name, remaining dependencies) per level of the walk
            stack = [(root, iter(self._fragments[root].dependencies))]
            while stack:
                name, dependencies = stack[-1]
                for dependency in dependencies:
                    if dependency not in visited and dependency in self._fragments:
                        visited.add(dependency)
                        stack.append((dependency, iter(self._fragments[dependency].dependencies)))
                        break
                else:
                    stack.pop()
                    result.append(self._fragments[name])
        return result

    def to_file_descriptor_set(self) -> descriptor_pb2.FileDescriptorSet:
        """Build a FileDescriptorSet from the ordered fragments."""
        descriptor_set = descriptor_pb2.FileDescriptorSet()
        descriptor_set.file.extend(fragment.proto for fragment in self.ordered())
        return descriptor_set
