"""Errors raised while talking to a reflection server and resolving its schema."""
from typing import Optional


class ReflectionError(Exception):
    """Base class for all reflection client errors."""


class TransportError(ReflectionError):
    """The gRPC channel failed during an exchange."""

    def __init__(self, message: str, code: Optional[object] = None):
        super().__init__(message)
        self.code = code  # grpc.StatusCode when known


class ProtocolError(ReflectionError):
    """The server answered with a response that does not fit the request."""


class RemoteReflectionError(ProtocolError):
    """The server answered with an explicit error_response."""

    def __init__(self, code: int, message: str):
        super().__init__(f"Server reported error {code}: {message}")
        self.code = code
        self.message = message


class DecodeError(ReflectionError):
    """A fragment could not be decoded into a FileDescriptorProto."""


class SchemaBuildError(ReflectionError):
    """The resolved fragments could not be assembled into a descriptor pool."""
