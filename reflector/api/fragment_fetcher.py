"""Fetch raw FileDescriptorProto fragments over a reflection session."""
import logging
from typing import List

from reflector.api.reflection_session import (
    FILE_BY_FILENAME,
    FILE_CONTAINING_SYMBOL,
    build_request,
)
from reflector.errors import ProtocolError, RemoteReflectionError

logger = logging.getLogger(__name__)


def check_response(response, expected: str):
    """
    Return the payload of the expected oneof case of a reflection response

    Args:
        response: ServerReflectionResponse received from the server
        expected: Name of the message_response case the request requires

    Raises:
        RemoteReflectionError: If the server sent an error_response
        ProtocolError: If any other case (or none) is set
    """
    case = response.WhichOneof("message_response")
    if case == expected:
        return getattr(response, expected)

    if case == "error_response":
        error = response.error_response
        raise RemoteReflectionError(error.error_code, error.error_message)

    raise ProtocolError(f"Expected {expected}, server sent {case or 'an empty response'}")


class FragmentFetcher:
    """Looks up serialized file descriptors by symbol or by filename"""

    def __init__(self, session):
        """
        Args:
            session: Object with an exchange(request) -> response method
        """
        self.session = session

    def fetch_by_symbol(self, symbol: str) -> List[bytes]:
        """Fetch the file defining a fully-qualified symbol"""
        return self._fetch(FILE_CONTAINING_SYMBOL, symbol)

    def fetch_by_filename(self, filename: str) -> List[bytes]:
        """Fetch a file by its proto path (e.g., google/protobuf/any.proto)"""
        return self._fetch(FILE_BY_FILENAME, filename)

    def _fetch(self, kind: str, value: str) -> List[bytes]:
        logger.debug(f"Fetching fragments: {kind}={value}")
        response = self.session.exchange(build_request(kind, value))
        payload = check_response(response, "file_descriptor_response")
        fragments = list(payload.file_descriptor_proto)
        logger.debug(f"Received {len(fragments)} fragment(s) for {value}")
        return fragments
