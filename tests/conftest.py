"""Shared fixtures for reflection client tests."""
from typing import Dict, List, Tuple

import pytest
from google.protobuf import descriptor_pb2
from grpc_reflection.v1alpha import reflection_pb2


def build_file(name: str, dependencies: List[str] = (), package: str = "", messages: Dict[str, List[Tuple[str, str]]] = None) -> bytes:
    """
    Serialize a FileDescriptorProto

    messages maps message name to (field_name, type_name) pairs; type_name is a
    fully-qualified message name such as ".pkg.Other".
    """
    proto = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
    proto.dependency.extend(dependencies)
    for message_name, fields in (messages or {}).items():
        message = proto.message_type.add(name=message_name)
        for number, (field_name, type_name) in enumerate(fields, start=1):
            message.field.add(
                name=field_name,
                number=number,
                label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
                type=descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE,
                type_name=type_name,
            )
    return proto.SerializeToString()


def files_response(*raw_files: bytes) -> reflection_pb2.ServerReflectionResponse:
    response = reflection_pb2.ServerReflectionResponse()
    response.file_descriptor_response.file_descriptor_proto.extend(raw_files)
    return response


def services_response(*names: str) -> reflection_pb2.ServerReflectionResponse:
    response = reflection_pb2.ServerReflectionResponse()
    for name in names:
        response.list_services_response.service.add(name=name)
    return response


def error_response(code: int, message: str) -> reflection_pb2.ServerReflectionResponse:
    response = reflection_pb2.ServerReflectionResponse()
    response.error_response.error_code = code
    response.error_response.error_message = message
    return response


class ScriptedSession:
    """Answers reflection requests from a table keyed by (kind, value)."""

    def __init__(self, responses):
        self.responses = dict(responses)
        self.requests = []
        self.closed = False

    def exchange(self, request):
        kind = request.WhichOneof("message_request")
        value = getattr(request, kind)
        self.requests.append((kind, value))
        if (kind, value) not in self.responses:
            return error_response(5, f"{value} not found")
        return self.responses[(kind, value)]

    def requested(self, kind: str) -> List[str]:
        return [value for request_kind, value in self.requests if request_kind == kind]

    def close(self):
        self.closed = True


class FakeFetcher:
    """Serves raw files by filename and counts fetches."""

    def __init__(self, files: Dict[str, List[bytes]]):
        self.files = files
        self.fetched = []

    def fetch_by_filename(self, filename: str) -> List[bytes]:
        self.fetched.append(filename)
        return self.files[filename]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def make_file():
    return build_file


@pytest.fixture
def responses():
    """Response builders: files, services, error"""
    return {
        "files": files_response,
        "services": services_response,
        "error": error_response,
    }


@pytest.fixture
def scripted_session():
    return ScriptedSession


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
