"""Tests for the runtime support used by generated bindings."""

import json
from typing import List, Optional

import httpx
import pytest
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from rpc_bindgen.categories import SemanticCategory
from rpc_bindgen.runtime import (
    BaseClient,
    HttpTransport,
    NumericValueError,
    Port,
    RpcError,
    TransportError,
    decode,
    refine,
    trim_params,
    validate_numeric_value,
)

C = SemanticCategory


class TestValidateNumericValue:
    """Test outgoing numeric range checks."""

    @pytest.mark.parametrize("value", [0, 0.00000001, 0.1, 21_000_000, 1.23456789])
    def test_valid_amounts(self, value):
        """Test that amounts within range and precision pass unchanged."""
        assert validate_numeric_value(value, C.MONETARY_AMOUNT) == value

    @pytest.mark.parametrize("value", [-1, 21_000_000.00000001, 0.000000001, float("nan")])
    def test_invalid_amounts(self, value):
        """Test that negative, oversized or over-precise amounts fail."""
        with pytest.raises(NumericValueError):
            validate_numeric_value(value, "MonetaryAmount")

    def test_amount_rejects_text(self):
        """Test that a string amount is rejected."""
        with pytest.raises(NumericValueError):
            validate_numeric_value("1.0", C.MONETARY_AMOUNT)

    def test_port_bounds(self):
        """Test the port range."""
        assert validate_numeric_value(8333, C.PORT) == 8333
        with pytest.raises(NumericValueError) as exc_info:
            validate_numeric_value(70000, C.PORT)
        assert exc_info.value.category == "Port"
        assert exc_info.value.code == "BG501"

    def test_small_integer(self):
        """Test that integral floats are accepted and converted."""
        assert validate_numeric_value(5.0, C.SMALL_INTEGER) == 5
        with pytest.raises(NumericValueError):
            validate_numeric_value(2**32, C.SMALL_INTEGER)
        with pytest.raises(NumericValueError):
            validate_numeric_value(1.5, C.SMALL_INTEGER)

    def test_booleans_rejected(self):
        """Test that booleans are not treated as numbers."""
        with pytest.raises(NumericValueError):
            validate_numeric_value(True, C.LARGE_INTEGER)

    def test_none_passes(self):
        """Test that omitted optional values are not checked."""
        assert validate_numeric_value(None, C.PORT) is None

    def test_unchecked_category(self):
        """Test that non-numeric categories pass through."""
        assert validate_numeric_value("abc", C.STRING) == "abc"

    def test_is_value_error(self):
        """Test that range failures are also ValueErrors."""
        with pytest.raises(ValueError):
            validate_numeric_value(-1, C.PORT)


class _Block(BaseModel):
    height: int
    hash: str


class TestDecoding:
    """Test decode, refine and trim_params."""

    def test_decode_scalars_and_lists(self):
        """Test decoding of plain and container types."""
        assert decode(int, 5) == 5
        assert decode(List[str], ["a", "b"]) == ["a", "b"]
        assert decode(Optional[int], None) is None

    def test_decode_bounded_alias(self):
        """Test that semantic aliases validate their bounds."""
        assert decode(Port, 8333) == 8333
        with pytest.raises(PydanticValidationError):
            decode(Port, 70000)

    def test_decode_model(self):
        """Test decoding into a model."""
        block = decode(_Block, {"height": 1, "hash": "00"})
        assert block == _Block(height=1, hash="00")

    def test_refine(self):
        """Test narrowing by condition label."""
        variants = {"for verbosity = 0": str, "for verbosity = 1": _Block}

        assert refine("00ff", variants, "for verbosity = 0") == "00ff"
        block = refine({"height": 2, "hash": "aa"}, variants, "for verbosity = 1")
        assert isinstance(block, _Block)

    def test_refine_unknown_label(self):
        """Test that an unknown label lists the known ones."""
        with pytest.raises(KeyError) as exc_info:
            refine("x", {"a": str}, "b")
        assert "'a'" in str(exc_info.value)

    def test_trim_params(self):
        """Test that only trailing None values are dropped."""
        assert trim_params(["a", None, 1, None, None]) == ["a", None, 1]
        assert trim_params([None]) == []
        assert trim_params([]) == []


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestHttpTransport:
    """Test the httpx-backed JSON-RPC transport."""

    def test_invoke_returns_result(self):
        """Test a successful call and the request payload."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"result": 800000, "error": None, "id": 1})

        transport = HttpTransport("http://node.test", client=_mock_client(handler))

        assert transport.invoke("getblockcount", []) == 800000
        assert requests[0]["method"] == "getblockcount"
        assert requests[0]["params"] == []
        assert requests[0]["jsonrpc"] == "1.0"

    def test_request_ids_increase(self):
        """Test that each call gets a fresh id."""
        ids = []

        def handler(request: httpx.Request) -> httpx.Response:
            ids.append(json.loads(request.content)["id"])
            return httpx.Response(200, json={"result": None, "error": None})

        transport = HttpTransport("http://node.test", client=_mock_client(handler))
        transport.invoke("ping", [])
        transport.invoke("ping", [])
        assert ids == [1, 2]

    def test_rpc_error(self):
        """Test that an error object raises RpcError, even on HTTP 500."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500,
                json={"result": None, "error": {"code": -8, "message": "Block height out of range"}},
            )

        transport = HttpTransport("http://node.test", client=_mock_client(handler))

        with pytest.raises(RpcError) as exc_info:
            transport.invoke("getblockhash", [10**9])
        assert exc_info.value.rpc_code == -8
        assert "out of range" in exc_info.value.message

    def test_http_error_without_body(self):
        """Test that a non-JSON error response raises TransportError."""
        transport = HttpTransport(
            "http://node.test",
            client=_mock_client(lambda r: httpx.Response(401, text="Unauthorized")),
        )
        with pytest.raises(TransportError):
            transport.invoke("getblockcount", [])

    def test_connection_error(self):
        """Test that network failures raise TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = HttpTransport("http://node.test", client=_mock_client(handler))
        with pytest.raises(TransportError):
            transport.invoke("getblockcount", [])


class TestBaseClient:
    """Test the shared call path."""

    def test_call_trims_and_decodes(self, recording_transport):
        """Test that _call trims params and decodes the result."""
        transport = recording_transport({"getblock": {"height": 3, "hash": "bb"}})
        client = BaseClient(transport)

        block = client._call("getblock", ["bb", None], _Block)

        assert transport.calls == [("getblock", ["bb"])]
        assert block.height == 3
