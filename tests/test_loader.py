"""
Tests for schema loading.

Covers the accepted document shapes, structural errors with their schema
paths, and file / HTTP sources.
"""

import json

import httpx
import pytest

from rpc_bindgen.errors import (
    DuplicateMethod,
    MalformedSchema,
    ParseError,
    SchemaSourceError,
    UnknownType,
)
from rpc_bindgen.ir import ProtocolVersion
from rpc_bindgen.loader import MAX_DEPTH, load_schema, load_schema_file, load_schema_url, parse


class TestParse:
    """Test parse() on the accepted document shapes."""

    def test_mapping_form_sorted_by_name(self, sample_schema):
        """Test that methods come back sorted by name."""
        methods = parse(sample_schema)

        names = [m.name for m in methods]
        assert names == sorted(sample_schema)
        assert isinstance(methods, tuple)

    def test_rpcs_wrapper(self, sample_schema):
        """Test that the {"rpcs": {...}} wrapper is unwrapped."""
        assert parse({"rpcs": sample_schema}) == parse(sample_schema)

    def test_list_form(self, sample_schema):
        """Test that a list of definitions is accepted."""
        methods = parse(list(sample_schema.values()))
        assert [m.name for m in methods] == sorted(sample_schema)

    def test_key_used_when_name_missing(self):
        """Test that the mapping key names a definition without a name."""
        methods = parse({"ping": {"results": []}})
        assert methods[0].name == "ping"

    def test_argument_fields(self, sample_schema):
        """Test that argument attributes are carried over."""
        getblock = {m.name: m for m in parse(sample_schema)}["getblock"]

        blockhash, verbosity = getblock.arguments
        assert blockhash.names == ("blockhash",)
        assert blockhash.type_tag == "hex"
        assert not blockhash.optional
        assert verbosity.names == ("verbosity", "verbose")
        assert verbosity.optional
        assert verbosity.default == 1
        assert verbosity.name == "verbosity"

    def test_required_flag_accepted(self):
        """Test that upstream `required` flags map onto optionality."""
        raw = {
            "m": {
                "arguments": [
                    {"names": ["a"], "type": "string", "required": True},
                    {"names": ["b"], "type": "string", "required": False},
                ]
            }
        }
        a, b = parse(raw)[0].arguments
        assert not a.optional
        assert b.optional

    def test_result_conditions_and_nesting(self, sample_schema):
        """Test that result alternatives keep conditions and inner fields."""
        getblock = {m.name: m for m in parse(sample_schema)}["getblock"]

        hex_form, object_form = getblock.results
        assert hex_form.condition == "for verbosity = 0"
        assert object_form.condition == "for verbosity = 1"
        assert [r.key_name for r in object_form.inner][:3] == ["hash", "confirmations", "height"]
        assert object_form.inner[-1].optional

    def test_result_version_window(self):
        """Test that since/until strings become protocol versions."""
        raw = {"m": {"results": [{"type": "number", "since": "v25.0", "until": "30"}]}}
        result = parse(raw)[0].results[0]

        assert result.since == ProtocolVersion(25, 0)
        assert result.until == ProtocolVersion(30, 0)
        assert result.versions.contains(ProtocolVersion(29, 1))
        assert not result.versions.contains(ProtocolVersion(30, 0))

    def test_defaults_frozen(self):
        """Test that list defaults are frozen into tuples."""
        raw = {"m": {"arguments": [{"names": ["a"], "type": "array", "optional": True, "default": [1, 2]}]}}
        assert parse(raw)[0].arguments[0].default == (1, 2)

    def test_unknown_keys_ignored(self):
        """Test that extra keys on definitions do not fail parsing."""
        raw = {"m": {"results": [], "x-internal": True}}
        assert parse(raw)[0].name == "m"


class TestParseErrors:
    """Test structural failures raised by parse()."""

    def test_missing_names_reports_path(self, sample_schema):
        """Test that a missing argument names list reports its path."""
        del sample_schema["getblock"]["arguments"][0]["names"]

        with pytest.raises(MalformedSchema) as exc_info:
            parse(sample_schema)

        assert exc_info.value.path == "getblock.arguments[0].names"
        assert isinstance(exc_info.value, ParseError)

    def test_empty_names_rejected(self, sample_schema):
        """Test that an empty names list is malformed."""
        sample_schema["getblock"]["arguments"][1]["names"] = []

        with pytest.raises(MalformedSchema) as exc_info:
            parse(sample_schema)
        assert exc_info.value.path == "getblock.arguments[1].names"

    def test_non_mapping_definition(self):
        """Test that a non-object definition is malformed."""
        with pytest.raises(MalformedSchema) as exc_info:
            parse({"m": ["not", "an", "object"]})
        assert exc_info.value.path == "m"

    def test_bad_root(self):
        """Test that a scalar document is rejected."""
        with pytest.raises(MalformedSchema):
            parse("getblockcount")

    def test_unknown_argument_type(self, sample_schema):
        """Test that an argument tag outside the enumeration is UnknownType."""
        sample_schema["getblock"]["arguments"][1]["type"] = "integer"

        with pytest.raises(UnknownType) as exc_info:
            parse(sample_schema)

        error = exc_info.value
        assert error.method == "getblock"
        assert error.arg_index == 1
        assert error.type_tag == "integer"
        assert error.code == "BG102"

    def test_unknown_nested_argument_type(self):
        """Test that inner argument tags are checked too."""
        raw = {
            "m": {
                "arguments": [
                    {"names": ["opts"], "type": "object", "inner": [{"names": ["x"], "type": "float"}]}
                ]
            }
        }
        with pytest.raises(UnknownType) as exc_info:
            parse(raw)
        assert exc_info.value.path == "m.arguments[0].inner[0].type"

    def test_unknown_result_type_is_not_a_parse_error(self):
        """Test that result tags are left to the validator."""
        methods = parse({"m": {"results": [{"type": "mystery"}]}})
        assert methods[0].results[0].type_tag == "mystery"

    def test_duplicate_method(self, method_defs):
        """Test that two definitions with one name raise DuplicateMethod."""
        defs = [method_defs["getblockcount"], dict(method_defs["getblockcount"])]

        with pytest.raises(DuplicateMethod) as exc_info:
            parse(defs)
        assert exc_info.value.method == "getblockcount"

    def test_nesting_depth_bounded(self):
        """Test that pathologically deep results are rejected."""
        node = {"type": "string", "key_name": "leaf"}
        for _ in range(MAX_DEPTH + 5):
            node = {"type": "object", "key_name": "wrap", "inner": [node]}

        with pytest.raises(MalformedSchema) as exc_info:
            parse({"deep": {"results": [node]}})
        assert "Nesting" in exc_info.value.message

    def test_nesting_within_bound_accepted(self):
        """Test that moderately nested results parse."""
        node = {"type": "string", "key_name": "leaf"}
        for _ in range(5):
            node = {"type": "object", "key_name": "wrap", "inner": [node]}
        assert parse({"nested": {"results": [node]}})[0].name == "nested"

    def test_invalid_version_window(self):
        """Test that an unparseable version label is malformed."""
        with pytest.raises(MalformedSchema):
            parse({"m": {"results": [{"type": "number", "since": "latest"}]}})

    def test_invalid_until_names_field(self):
        """Test that the error path points at the bound that failed."""
        with pytest.raises(MalformedSchema) as exc_info:
            parse({"m": {"results": [{"type": "number", "since": "v25.0", "until": "soon"}]}})
        assert exc_info.value.path == "m.results[0].until"


class TestSources:
    """Test file and HTTP schema sources."""

    def test_load_file(self, tmp_path, sample_schema):
        """Test loading a JSON file."""
        path = tmp_path / "v29.json"
        path.write_text(json.dumps(sample_schema), encoding="utf-8")

        assert load_schema(path) == sample_schema
        assert load_schema_file(str(path)) == sample_schema

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises SchemaSourceError."""
        with pytest.raises(SchemaSourceError) as exc_info:
            load_schema_file(tmp_path / "absent.json")
        assert exc_info.value.source.endswith("absent.json")

    def test_invalid_json(self, tmp_path):
        """Test that bad JSON raises SchemaSourceError with a position."""
        path = tmp_path / "broken.json"
        path.write_text("{\n  \"m\": ", encoding="utf-8")

        with pytest.raises(SchemaSourceError) as exc_info:
            load_schema_file(path)
        assert "line" in exc_info.value.message

    def test_load_url(self, sample_schema):
        """Test fetching a schema over HTTP."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=sample_schema)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        assert load_schema("https://example.test/v29.json", client=client) == sample_schema
        assert seen == ["https://example.test/v29.json"]
        # Caller-supplied clients stay open
        assert not client.is_closed

    def test_url_http_error(self):
        """Test that an HTTP error status raises SchemaSourceError."""
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(404)))

        with pytest.raises(SchemaSourceError) as exc_info:
            load_schema_url("https://example.test/missing.json", client=client)
        assert exc_info.value.source == "https://example.test/missing.json"

    def test_url_not_json(self):
        """Test that a non-JSON body raises SchemaSourceError."""
        client = httpx.Client(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        )
        with pytest.raises(SchemaSourceError):
            load_schema_url("https://example.test/v29.json", client=client)
