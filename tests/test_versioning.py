"""Tests for cross-version signature diffing."""

import copy

from rpc_bindgen.emitter import CodeEmitter
from rpc_bindgen.ir import ProtocolVersion
from rpc_bindgen.loader import parse
from rpc_bindgen.versioning import ChangeType, SignatureDiffer, diff_versions, summarize

OLD = ProtocolVersion(29, 1)
NEW = ProtocolVersion(30, 0)


def _diff(old_schema, new_schema):
    return diff_versions(OLD, parse(old_schema), NEW, parse(new_schema))


class TestSignatureDiffer:
    """Test detection of signature changes."""

    def test_identical_schemas(self, sample_schema):
        """Test that the same schema under two versions has no changes."""
        assert _diff(sample_schema, copy.deepcopy(sample_schema)) == []

    def test_method_added_and_removed(self, method_defs):
        """Test method additions (compatible) and removals (breaking)."""
        old = {"getblockcount": method_defs["getblockcount"]}
        new = {"getblockhash": method_defs["getblockhash"]}

        changes = _diff(old, new)

        kinds = {c.method: c.type for c in changes}
        assert kinds == {
            "getblockcount": ChangeType.METHOD_REMOVED,
            "getblockhash": ChangeType.METHOD_ADDED,
        }
        assert [c.breaking for c in changes] == [True, False]

    def test_optional_param_added(self, method_defs):
        """Test that a new optional parameter is compatible."""
        old = {"getblockhash": method_defs["getblockhash"]}
        new = copy.deepcopy(old)
        new["getblockhash"]["arguments"].append(
            {"names": ["verbose"], "type": "boolean", "optional": True}
        )

        changes = _diff(old, new)

        assert len(changes) == 1
        assert changes[0].type == ChangeType.PARAM_ADDED
        assert not changes[0].breaking

    def test_param_became_required(self, method_defs):
        """Test that making a parameter required is breaking."""
        old = {"getblock": method_defs["getblock"]}
        new = copy.deepcopy(old)
        new["getblock"]["arguments"][1]["optional"] = False

        changes = _diff(old, new)

        required = [c for c in changes if c.type == ChangeType.PARAM_REQUIRED_CHANGED]
        assert len(required) == 1
        assert required[0].param == "verbosity"
        assert required[0].breaking

    def test_param_type_changed(self, method_defs):
        """Test that a retyped parameter is breaking."""
        old = {"getblockhash": method_defs["getblockhash"]}
        new = copy.deepcopy(old)
        new["getblockhash"]["arguments"][0]["type"] = "string"

        changes = _diff(old, new)

        assert [c.type for c in changes] == [ChangeType.PARAM_TYPE_CHANGED]
        assert changes[0].old_value == "LargeInteger"
        assert changes[0].new_value == "String"

    def test_return_changed(self, method_defs):
        """Test that a changed result shape is breaking."""
        old = {"getblockcount": method_defs["getblockcount"]}
        new = copy.deepcopy(old)
        new["getblockcount"]["results"][0]["type"] = "string"

        changes = _diff(old, new)

        assert [c.type for c in changes] == [ChangeType.RETURN_CHANGED]
        assert changes[0].breaking

    def test_check_compatibility(self, method_defs):
        """Test the compatibility verdict."""
        emitter = CodeEmitter()
        old = emitter.emit(OLD, parse({"getblockcount": method_defs["getblockcount"]}))
        new = emitter.emit(NEW, parse(method_defs))

        compatible, changes = SignatureDiffer().check_compatibility(old, new)

        assert compatible
        assert {c.type for c in changes} == {ChangeType.METHOD_ADDED}

    def test_summarize(self, method_defs):
        """Test per-type counts."""
        old = {"getblockcount": method_defs["getblockcount"]}
        counts = summarize(_diff(old, method_defs))

        assert counts["method_added"] == 3
        assert counts["breaking"] == 0
