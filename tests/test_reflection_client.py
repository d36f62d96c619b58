"""
Unit tests for ReflectionClient and SchemaAssembler

Tests:
- list_services ordering and error cases
- resolve_by_symbol / resolve_by_filename through a scripted session
- Schema assembly and lookups
"""

import pytest
from google.protobuf import descriptor_pb2

from reflector.api.reflection_session import FILE_BY_FILENAME, FILE_CONTAINING_SYMBOL, LIST_SERVICES
from reflector.errors import ProtocolError, RemoteReflectionError, SchemaBuildError
from reflector.introspection import ReflectionClient
from reflector.schema.assembler import SchemaAssembler
from reflector.schema.models import DecodedFragment, FragmentRegistry, decode_fragment


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def shop_files(make_file):
    """Three files: shop imports money and common, money imports common"""
    return {
        "common.proto": make_file("common.proto", package="shop", messages={"Id": []}),
        "money.proto": make_file(
            "money.proto",
            ["common.proto"],
            package="shop",
            messages={"Price": [("currency_id", ".shop.Id")]},
        ),
        "shop.proto": make_file(
            "shop.proto",
            ["money.proto", "common.proto"],
            package="shop",
            messages={"Product": [("id", ".shop.Id"), ("price", ".shop.Price")]},
        ),
    }


@pytest.fixture
def shop_session(shop_files, responses, scripted_session):
    files = responses["files"]
    return scripted_session({
        (FILE_CONTAINING_SYMBOL, "shop.Product"): files(shop_files["shop.proto"]),
        (FILE_BY_FILENAME, "shop.proto"): files(shop_files["shop.proto"]),
        (FILE_BY_FILENAME, "money.proto"): files(shop_files["money.proto"]),
        (FILE_BY_FILENAME, "common.proto"): files(shop_files["common.proto"]),
    })


# ============================================================================
# TEST: ReflectionClient
# ============================================================================


class TestReflectionClient:
    """Tests for ReflectionClient class"""

    def test_list_services_order(self, responses, scripted_session):
        session = scripted_session({(LIST_SERVICES, "*"): responses["services"]("pkg.Alpha", "pkg.Beta")})
        client = ReflectionClient("localhost:50051", session=session)

        assert client.list_services() == ["pkg.Alpha", "pkg.Beta"]
        assert session.requests == [(LIST_SERVICES, "*")]

    def test_list_services_wrong_case(self, make_file, responses, scripted_session):
        session = scripted_session({(LIST_SERVICES, "*"): responses["files"](make_file("a.proto"))})
        client = ReflectionClient("localhost:50051", session=session)

        with pytest.raises(ProtocolError):
            client.list_services()

    def test_list_services_error_response(self, responses, scripted_session):
        session = scripted_session({(LIST_SERVICES, "*"): responses["error"](12, "unimplemented")})
        client = ReflectionClient("localhost:50051", session=session)

        with pytest.raises(RemoteReflectionError):
            client.list_services()

    def test_resolve_by_symbol(self, shop_session):
        client = ReflectionClient("localhost:50051", session=shop_session)

        schema = client.resolve_by_symbol("shop.Product")

        assert set(schema.file_names) == {"shop.proto", "money.proto", "common.proto"}
        assert schema.find_message_type("shop.Product").fields_by_name["price"].message_type.full_name == "shop.Price"
        assert shop_session.requested(FILE_BY_FILENAME) == ["money.proto", "common.proto"]

    def test_resolve_by_filename(self, shop_session):
        client = ReflectionClient("localhost:50051", session=shop_session)

        schema = client.resolve_by_filename("shop.proto")

        assert schema.file_names[-1] == "shop.proto"
        assert schema.file_names.index("common.proto") < schema.file_names.index("money.proto")
        assert shop_session.requested(FILE_BY_FILENAME).count("common.proto") == 1

    def test_resolve_missing_file(self, scripted_session):
        """Server error stops resolution before any further fetch"""
        session = scripted_session({})
        client = ReflectionClient("localhost:50051", session=session)

        with pytest.raises(RemoteReflectionError):
            client.resolve_by_filename("missing.proto")

        assert session.requests == [(FILE_BY_FILENAME, "missing.proto")]

    def test_dependency_fetch_error_aborts(self, shop_files, responses, scripted_session):
        session = scripted_session({
            (FILE_BY_FILENAME, "money.proto"): responses["files"](shop_files["money.proto"]),
        })
        client = ReflectionClient("localhost:50051", session=session)

        with pytest.raises(RemoteReflectionError):
            client.resolve_by_filename("money.proto")

        assert session.requested(FILE_BY_FILENAME) == ["money.proto", "common.proto"]

    def test_resolve_registry_by_symbol(self, shop_session):
        client = ReflectionClient("localhost:50051", session=shop_session)

        registry = client.resolve_registry_by_symbol("shop.Product")

        assert registry.is_closed()
        assert len(registry) == 3

    def test_context_manager_closes_session(self, scripted_session):
        session = scripted_session({})
        with ReflectionClient("localhost:50051", session=session):
            pass

        assert session.closed is True


# ============================================================================
# TEST: SchemaAssembler
# ============================================================================


class TestSchemaAssembler:
    """Tests for SchemaAssembler and SchemaRoot"""

    def _registry(self, *raw_files):
        registry = FragmentRegistry()
        for raw in raw_files:
            registry.add(decode_fragment(raw))
        return registry

    def test_assemble_in_dependency_order(self, shop_files):
        # Insert dependents before their imports
        registry = self._registry(shop_files["shop.proto"], shop_files["money.proto"], shop_files["common.proto"])

        schema = SchemaAssembler().assemble(registry)

        assert schema.file_names == ["common.proto", "money.proto", "shop.proto"]
        assert schema.find_file("shop.proto").package == "shop"
        assert schema.find_symbol("shop.Price").name == "money.proto"

    def test_unknown_symbol_raises_key_error(self, shop_files):
        schema = SchemaAssembler().assemble(self._registry(shop_files["common.proto"]))

        with pytest.raises(KeyError):
            schema.find_message_type("shop.Nope")

    def test_refuses_unclosed_registry(self):
        registry = FragmentRegistry()
        registry.add(DecodedFragment(name="a.proto", dependencies=["b.proto"]))

        with pytest.raises(SchemaBuildError):
            SchemaAssembler().assemble(registry)

    def test_service_names(self):
        proto = descriptor_pb2.FileDescriptorProto(name="svc.proto", package="pkg", syntax="proto3")
        proto.message_type.add(name="Ping")
        proto.service.add(name="Pinger").method.add(name="Ping", input_type=".pkg.Ping", output_type=".pkg.Ping")
        registry = self._registry(proto.SerializeToString())

        schema = SchemaAssembler().assemble(registry)

        assert schema.service_names() == ["pkg.Pinger"]
        assert schema.find_service("pkg.Pinger").methods_by_name["Ping"].input_type.full_name == "pkg.Ping"

    def test_message_class(self, shop_files):
        registry = self._registry(shop_files["common.proto"], shop_files["money.proto"])
        schema = SchemaAssembler().assemble(registry)

        price_class = schema.message_class("shop.Price")
        price = price_class()
        price.currency_id.SetInParent()

        assert price.HasField("currency_id")

    def test_to_file_descriptor_set(self, shop_files):
        registry = self._registry(shop_files["money.proto"], shop_files["common.proto"])
        schema = SchemaAssembler().assemble(registry)

        descriptor_set = schema.to_file_descriptor_set()

        assert [proto.name for proto in descriptor_set.file] == ["common.proto", "money.proto"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
