"""Shared pytest fixtures for rpc-bindgen tests."""

import copy
import importlib
import logging
import sys
import uuid
from typing import Any, Dict, List, Tuple

import pytest


GETBLOCKCOUNT = {
    "name": "getblockcount",
    "category": "blockchain",
    "description": "Returns the height of the most-work fully-validated chain.",
    "arguments": [],
    "results": [{"type": "number", "description": "The current block count"}],
}

GETBLOCKHASH = {
    "name": "getblockhash",
    "category": "blockchain",
    "description": "Returns hash of block in best-block-chain at height provided.",
    "arguments": [
        {"names": ["height"], "type": "number", "optional": False, "description": "The height index"}
    ],
    "results": [{"type": "hex", "description": "The block hash"}],
}

GETBLOCK = {
    "name": "getblock",
    "category": "blockchain",
    "description": "Returns information about a block.",
    "arguments": [
        {"names": ["blockhash"], "type": "hex", "description": "The block hash"},
        {
            "names": ["verbosity", "verbose"],
            "type": "number",
            "optional": True,
            "default": 1,
            "description": "0 for hex-encoded data, 1 for a JSON object",
        },
    ],
    "results": [
        {
            "type": "hex",
            "condition": "for verbosity = 0",
            "description": "A string that is serialized, hex-encoded data for block 'hash'",
        },
        {
            "type": "object",
            "condition": "for verbosity = 1",
            "inner": [
                {"type": "hex", "key_name": "hash", "description": "the block hash (same as provided)"},
                {"type": "number", "key_name": "confirmations", "description": "The number of confirmations"},
                {"type": "number", "key_name": "height", "description": "The block height or index"},
                {
                    "type": "array",
                    "key_name": "tx",
                    "description": "The transaction ids",
                    "inner": [{"type": "hex", "description": "The transaction id"}],
                },
                {"type": "number", "key_name": "time", "description": "The block time"},
                {
                    "type": "hex",
                    "key_name": "previousblockhash",
                    "optional": True,
                    "description": "The hash of the previous block",
                },
            ],
        },
    ],
}

SENDTOADDRESS = {
    "name": "sendtoaddress",
    "category": "wallet",
    "description": "Send an amount to a given address.",
    "arguments": [
        {"names": ["address"], "type": "string", "description": "The address to send to."},
        {"names": ["amount"], "type": "number", "description": "The amount to send."},
        {"names": ["comment"], "type": "string", "optional": True, "description": "A comment."},
        {
            "names": ["subtractfeefromamount"],
            "type": "boolean",
            "optional": True,
            "default": False,
            "description": "The fee will be deducted from the amount being sent.",
        },
    ],
    "results": [{"type": "hex", "key_name": "txid", "description": "The transaction id."}],
}


@pytest.fixture
def method_defs() -> Dict[str, Dict[str, Any]]:
    """Individual raw method definitions, deep-copied per test."""
    return copy.deepcopy(
        {
            "getblockcount": GETBLOCKCOUNT,
            "getblockhash": GETBLOCKHASH,
            "getblock": GETBLOCK,
            "sendtoaddress": SENDTOADDRESS,
        }
    )


@pytest.fixture
def sample_schema(method_defs) -> Dict[str, Dict[str, Any]]:
    """A small, valid schema in the name -> definition form."""
    return method_defs


@pytest.fixture
def bad_ordering_schema(method_defs) -> Dict[str, Dict[str, Any]]:
    """A schema where a required argument follows an optional one."""
    schema = {"getblockcount": method_defs["getblockcount"]}
    schema["getblockstats"] = {
        "name": "getblockstats",
        "category": "blockchain",
        "arguments": [
            {"names": ["stats"], "type": "array", "optional": True},
            {"names": ["hash_or_height"], "type": "number", "optional": False},
        ],
        "results": [{"type": "object", "inner": [{"type": "number", "key_name": "avgfee"}]}],
    }
    return schema


class RecordingTransport:
    """Transport double returning canned results and recording calls."""

    def __init__(self, responses: Dict[str, Any]):
        self.responses = responses
        self.calls: List[Tuple[str, List[Any]]] = []

    def invoke(self, method: str, params: List[Any]) -> Any:
        self.calls.append((method, list(params)))
        return self.responses[method]


@pytest.fixture
def recording_transport():
    return RecordingTransport


@pytest.fixture
def import_tree(tmp_path, monkeypatch):
    """
    Write a rendered file mapping under a unique package and import it.

    Returns a function ``load(files, module)`` yielding the imported module
    ``<package>.<module>``.
    """
    package = f"bindings_{uuid.uuid4().hex}"
    root = tmp_path / package
    monkeypatch.syspath_prepend(str(tmp_path))

    def load(files: Dict[str, str], module: str):
        root.mkdir(exist_ok=True)
        (root / "__init__.py").write_text("", encoding="utf-8")
        for relative, source in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source, encoding="utf-8")
        importlib.invalidate_caches()
        return importlib.import_module(f"{package}.{module}")

    yield load

    for name in [m for m in sys.modules if m == package or m.startswith(f"{package}.")]:
        del sys.modules[name]


@pytest.fixture(autouse=True)
def reset_bindgen_logger():
    """Undo handler/propagation changes made by CLI logging setup."""
    yield
    logger = logging.getLogger("rpc_bindgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
