"""Unit tests for name canonicalization and RPC signature composition."""

from __future__ import annotations

import pytest

from grpc_stub_generator.helper import (
    camelize,
    canonicalize,
    compose_signature,
    output_file_name,
    resolve_top_module,
    rpc_kind,
    sanitize_name,
    service_prefix,
    source_base_name,
)
from grpc_stub_generator.model import RpcEntry


class TestCamelize:
    """Test the per-segment PascalCase transform."""

    def test_snake_case(self):
        assert camelize("foo_bar") == "FooBar"

    def test_mixed_case_is_kept(self):
        assert camelize("helloWorld") == "HelloWorld"

    def test_upper_case_is_kept(self):
        assert camelize("HTTP_server") == "HTTPServer"

    def test_hyphen_is_a_separator(self):
        assert camelize("user-profile") == "UserProfile"

    def test_leading_and_repeated_separators(self):
        assert camelize("_foo__bar_") == "FooBar"

    def test_digits(self):
        assert camelize("v1_beta2") == "V1Beta2"

    def test_empty(self):
        assert camelize("") == ""


class TestCanonicalize:
    """Test the dotted canonical form."""

    def test_segments_are_camelized(self):
        assert canonicalize("foo_bar.baz") == "FooBar.Baz"

    def test_every_segment_starts_upper_case(self):
        result = canonicalize("accounts.user_profile.v1")
        assert all(segment[0].isupper() or segment[0].isdigit() for segment in result.split("."))
        assert result == "Accounts.UserProfile.V1"

    @pytest.mark.parametrize(
        "name",
        ["foo_bar.baz", "helloworld", "Helloworld", "a.b_c.d-e", "google.protobuf.Empty", "x__y", "HTTP_server"],
    )
    def test_idempotent(self, name):
        assert canonicalize(canonicalize(name)) == canonicalize(name)

    def test_already_canonical(self):
        assert canonicalize("Routeguide.RouteNote") == "Routeguide.RouteNote"


class TestResolveTopModule:
    """Test the precedence of the top module name."""

    def test_namespace_wins(self):
        assert resolve_top_module("A.B", "C.D", "file") == canonicalize("A.B")

    def test_package_without_namespace(self):
        assert resolve_top_module(None, "C.D", "file") == canonicalize("C.D")

    def test_base_name_fallback(self):
        assert resolve_top_module(None, None, "file") == canonicalize("file")

    def test_empty_values_are_skipped(self):
        assert resolve_top_module("", "", "echo_service") == "EchoService"

    def test_values_are_not_merged(self):
        assert resolve_top_module("my_app", "helloworld", "helloworld") == "MyApp"


class TestServicePrefix:
    """Test the route prefix of services."""

    def test_empty_package(self):
        assert service_prefix("") == ""

    def test_no_package(self):
        assert service_prefix(None) == ""

    def test_dotted_package(self):
        assert service_prefix("pkg.sub") == "pkg.sub."


class TestFileNames:
    """Test the output naming helpers."""

    def test_source_base_name(self):
        assert source_base_name("protos/helloworld.proto") == "helloworld"

    def test_output_file_name(self):
        assert output_file_name("protos/route_guide.proto") == "route_guide.generated.py"

    def test_sanitize_keyword(self):
        assert sanitize_name("None") == "None_"
        assert sanitize_name("SayHello") == "SayHello"


class TestComposeSignature:
    """Test the streaming matrix of RPC signatures."""

    @pytest.mark.parametrize(
        ("request_streamed", "response_streamed", "expected"),
        [
            (False, False, 'rpc("RouteChat", "Routeguide.RouteNote", "Routeguide.Feature")'),
            (True, False, 'rpc("RouteChat", stream("Routeguide.RouteNote"), "Routeguide.Feature")'),
            (False, True, 'rpc("RouteChat", "Routeguide.RouteNote", stream("Routeguide.Feature"))'),
            (True, True, 'rpc("RouteChat", stream("Routeguide.RouteNote"), stream("Routeguide.Feature"))'),
        ],
    )
    def test_streaming_matrix(self, request_streamed, response_streamed, expected):
        entry = RpcEntry("RouteChat", "RouteNote", "Feature", request_streamed, response_streamed)
        signature = compose_signature(entry, "Routeguide")

        assert signature == expected
        assert signature.count("stream(") == request_streamed + response_streamed

    def test_types_are_canonicalized(self):
        entry = RpcEntry("Ping", "google.protobuf.Empty", "ping_reply")
        assert compose_signature(entry, "EchoService") == (
            'rpc("Ping", "EchoService.Google.Protobuf.Empty", "EchoService.PingReply")'
        )

    def test_method_name_is_not_transformed(self):
        entry = RpcEntry("get_feature", "Point", "Feature")
        assert compose_signature(entry, "Top").startswith('rpc("get_feature", ')

    def test_order_is_name_request_response(self):
        entry = RpcEntry("M", "Req", "Resp")
        signature = compose_signature(entry, "T")
        assert signature.index('"M"') < signature.index("T.Req") < signature.index("T.Resp")


class TestRpcKind:
    """Test the channel multi-callable selection."""

    @pytest.mark.parametrize(
        ("request_streamed", "response_streamed", "expected"),
        [
            (False, False, "unary_unary"),
            (True, False, "stream_unary"),
            (False, True, "unary_stream"),
            (True, True, "stream_stream"),
        ],
    )
    def test_kinds(self, request_streamed, response_streamed, expected):
        entry = RpcEntry("M", "Req", "Resp", request_streamed, response_streamed)
        assert rpc_kind(entry) == expected
