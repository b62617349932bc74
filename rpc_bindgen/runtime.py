"""
Runtime support imported by generated bindings.

Generated modules only depend on this module and pydantic. It provides:

    1. Semantic type aliases (``Port``, ``MonetaryAmount``, ``TransactionId``...)
    2. The ``Transport`` protocol and an httpx-backed JSON-RPC transport
    3. ``BaseClient`` with the shared call path used by every binding
    4. ``decode`` / ``refine`` for typed results and union narrowing
    5. Numeric range checks for outgoing values

Example:
    ```python
    from my_bindings.v29_1 import Client
    from rpc_bindgen.runtime import HttpTransport

    client = Client(HttpTransport("http://127.0.0.1:8332", auth=("user", "pass")))
    height = client.getblockcount()
    ```
"""

import itertools
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Annotated, Any, Dict, List, NewType, Optional, Protocol, Sequence, Tuple, Union

import httpx
from pydantic import BaseModel, Field, TypeAdapter

from .categories import PORT_MAX, SMALL_INTEGER_MAX, SemanticCategory
from .errors import BindgenError

# ---------------------------------------------------------------------------
# Semantic aliases
# ---------------------------------------------------------------------------

Port = Annotated[int, Field(ge=0, le=PORT_MAX)]
SmallInteger = Annotated[int, Field(ge=-SMALL_INTEGER_MAX, le=SMALL_INTEGER_MAX)]
LargeInteger = int
ExtraLargeInteger = int
# Amounts travel as JSON floats in coin units.
MonetaryAmount = float
TransactionId = NewType("TransactionId", str)
BlockHash = NewType("BlockHash", str)
Address = NewType("Address", str)
Script = NewType("Script", str)
PublicKey = NewType("PublicKey", str)

MAX_MONEY = Decimal("21000000")
AMOUNT_DECIMALS = 8
UINT64_MAX = 2**64 - 1


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class NumericValueError(BindgenError, ValueError):
    """Outgoing numeric value does not fit its semantic category."""

    code = "BG501"

    def __init__(self, message: str, value: Any, category: str):
        super().__init__(message, details={"value": repr(value), "category": category})
        self.value = value
        self.category = category


class TransportError(BindgenError):
    """The transport could not complete a call."""

    code = "BG502"


class RpcError(BindgenError):
    """The remote side answered with an error object."""

    code = "BG503"

    def __init__(self, method: str, rpc_code: Optional[int], message: str):
        super().__init__(
            f"{method} failed: {message}",
            details={"method": method, "rpc_code": rpc_code},
        )
        self.method = method
        self.rpc_code = rpc_code


# ---------------------------------------------------------------------------
# Numeric checks
# ---------------------------------------------------------------------------


def validate_numeric_value(value: Any, category: Union[SemanticCategory, str]) -> Any:
    """
    Check that ``value`` fits ``category``; return it unchanged.

    MonetaryAmount must lie in 0..21,000,000 with at most 8 decimals;
    Port, SmallInteger, LargeInteger and ExtraLargeInteger must be integers
    within their ranges. Other categories are not checked.

    Raises:
        NumericValueError: value out of range or wrong kind
    """
    category = SemanticCategory(category)
    if value is None:
        return value
    if isinstance(value, bool):
        raise NumericValueError(f"Boolean is not a {category.value}", value, category.value)

    if category in (SemanticCategory.MONETARY_AMOUNT, SemanticCategory.FLOAT):
        if not isinstance(value, (int, float, Decimal)):
            raise NumericValueError(f"Expected a number, got {value!r}", value, category.value)
        if category == SemanticCategory.FLOAT:
            return value
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise NumericValueError(f"Invalid amount {value!r}", value, category.value) from exc
        if not amount.is_finite() or amount < 0 or amount > MAX_MONEY:
            raise NumericValueError(
                f"Amount {value!r} is outside 0..{MAX_MONEY}", value, category.value
            )
        if amount != amount.quantize(Decimal(1).scaleb(-AMOUNT_DECIMALS)):
            raise NumericValueError(
                f"Amount {value!r} has more than {AMOUNT_DECIMALS} decimals",
                value,
                category.value,
            )
        return value

    bounds = _INTEGER_BOUNDS.get(category)
    if bounds is None:
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise NumericValueError(f"Expected an integer, got {value!r}", value, category.value)
    low, high = bounds
    if value < low or value > high:
        raise NumericValueError(
            f"{value} is outside {low}..{high} for {category.value}", value, category.value
        )
    return value


_INTEGER_BOUNDS: Dict[SemanticCategory, Tuple[int, int]] = {
    SemanticCategory.PORT: (0, PORT_MAX),
    SemanticCategory.SMALL_INTEGER: (-SMALL_INTEGER_MAX, SMALL_INTEGER_MAX),
    SemanticCategory.LARGE_INTEGER: (-UINT64_MAX, UINT64_MAX),
    SemanticCategory.EXTRA_LARGE_INTEGER: (-(2**127), 2**128 - 1),
}


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1024)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def decode(target: Any, raw: Any) -> Any:
    """Validate a raw structured value into the emitted result type."""
    return _adapter(target).validate_python(raw)


def refine(value: Any, variants: Dict[str, Any], label: str) -> Any:
    """
    Narrow a union-typed result to the variant registered under ``label``.

    Condition labels are matched verbatim; the caller decides which label
    applies (for example from the arguments it passed).
    """
    try:
        target = variants[label]
    except KeyError:
        known = ", ".join(repr(k) for k in variants)
        raise KeyError(f"Unknown result variant {label!r}; expected one of: {known}") from None
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    return decode(target, value)


def trim_params(params: Sequence[Any]) -> List[Any]:
    """Drop trailing ``None`` values so omitted optional arguments stay off the wire."""
    trimmed = list(params)
    while trimmed and trimmed[-1] is None:
        trimmed.pop()
    return trimmed


# ---------------------------------------------------------------------------
# Transport and client
# ---------------------------------------------------------------------------


class Transport(Protocol):
    """The one capability bindings need from the wire layer."""

    def invoke(self, method: str, params: List[Any]) -> Any:
        ...


class HttpTransport:
    """
    Minimal JSON-RPC over HTTP POST transport.

    Batching and retries are left to richer transports implementing
    ``Transport``.
    """

    def __init__(
        self,
        url: str,
        *,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.Client(auth=auth, timeout=timeout)
        self._ids = itertools.count(1)

    def invoke(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "1.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = self._client.post(self.url, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method}: {exc}") from exc
        try:
            body = response.json()
        except ValueError as exc:
            response_error = f"HTTP {response.status_code} with non-JSON body"
            raise TransportError(f"{method}: {response_error}") from exc
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            raise RpcError(method, error.get("code"), error.get("message", str(error)))
        if error:
            raise RpcError(method, None, str(error))
        if response.is_error:
            raise TransportError(f"{method}: HTTP {response.status_code}")
        return body.get("result") if isinstance(body, dict) else body

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


class BaseClient:
    """Shared call path for generated bindings."""

    protocol_version: str = ""

    def __init__(self, transport: Transport):
        self.transport = transport

    def _call(self, method: str, params: Sequence[Any], result_type: Any) -> Any:
        raw = self.transport.invoke(method, trim_params(params))
        return decode(result_type, raw)
