"""gRPC server reflection session."""
import logging
from typing import Optional, Sequence, Tuple

import grpc
from grpc_reflection.v1alpha import reflection_pb2, reflection_pb2_grpc

from reflector.errors import ProtocolError, TransportError

logger = logging.getLogger(__name__)

# Request kinds understood by the reflection service that this client sends
LIST_SERVICES = "list_services"
FILE_CONTAINING_SYMBOL = "file_containing_symbol"
FILE_BY_FILENAME = "file_by_filename"

REQUEST_KINDS = (LIST_SERVICES, FILE_CONTAINING_SYMBOL, FILE_BY_FILENAME)


def build_request(kind: str, value: str) -> reflection_pb2.ServerReflectionRequest:
    """
    Build a reflection request with exactly one oneof case set

    Args:
        kind: One of REQUEST_KINDS
        value: Pattern, symbol or filename for the request

    Returns:
        ServerReflectionRequest ready to be sent

    Raises:
        ValueError: If kind is not a supported request kind
    """
    if kind not in REQUEST_KINDS:
        raise ValueError(f"Unsupported reflection request kind: {kind}")
    return reflection_pb2.ServerReflectionRequest(**{kind: value})


class ReflectionSession:
    """
    Owns the gRPC channel to a reflection server and performs single exchanges

    Every call to exchange() opens its own ServerReflectionInfo stream, writes
    one request, reads one response and finishes the stream.

    Usage:
    ```python
    session = ReflectionSession("localhost:50051")
    response = session.exchange(build_request(LIST_SERVICES, "*"))
    ```
    """

    def __init__(
        self,
        target: str,
        credentials: Optional[grpc.ChannelCredentials] = None,
        options: Optional[Sequence[Tuple[str, object]]] = None,
        metadata: Optional[Sequence[Tuple[str, str]]] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize reflection session

        Args:
            target: Server address (e.g., localhost:50051)
            credentials: Channel credentials, None for a plaintext channel
            options: grpc channel options
            metadata: Request metadata sent with every exchange
            timeout: Per-exchange deadline in seconds
        """
        self.target = target
        self.metadata = list(metadata or [])
        self.timeout = timeout

        if credentials is not None:
            self.channel = grpc.secure_channel(target, credentials, options=options)
        else:
            self.channel = grpc.insecure_channel(target, options=options)

        self.stub = reflection_pb2_grpc.ServerReflectionStub(self.channel)

    def exchange(
        self, request: reflection_pb2.ServerReflectionRequest
    ) -> reflection_pb2.ServerReflectionResponse:
        """
        Send one request and return the single response it produces

        Raises:
            TransportError: If the channel fails or the deadline expires
            ProtocolError: If the stream ends without any response
        """
        kind = request.WhichOneof("message_request")
        logger.debug(f"Reflection exchange with {self.target}: {kind}")

        call = self.stub.ServerReflectionInfo(
            iter([request]),
            metadata=self.metadata,
            timeout=self.timeout,
        )
        try:
            response = next(call)
        except StopIteration:
            raise ProtocolError(f"Server closed the stream without answering {kind}")
        except grpc.RpcError as e:
            code = e.code() if hasattr(e, "code") else None
            details = e.details() if hasattr(e, "details") else str(e)
            raise TransportError(
                f"Reflection call to {self.target} failed: {details}", code=code
            ) from e
        finally:
            # One response per request; release the stream either way
            call.cancel()

        return response

    def close(self) -> None:
        """Close the underlying channel"""
        self.channel.close()

    def __enter__(self) -> "ReflectionSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
