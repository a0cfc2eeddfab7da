"""
Bitmex frame models and snapshot encoders.

Decoding goes through Pydantic models so a malformed line fails with an
error naming the structure it could not be read as. Encoding is
deterministic: same logical state, same bytes.

Wire frames look like what Bitmex sends:
    {"success":true,"subscribe":"orderBookL2","request":{"op":"subscribe","args":["orderBookL2"]}}
    {"table":"orderBookL2","action":"partial","data":[{"symbol":"XBTUSD","id":1,...}]}

State frames are bare JSON:
    !subscribed -> ["orderBookL2","trade"]
    orderBookL2 -> [{"symbol":"XBTUSD","id":1,"side":"Buy","size":5,"price":100}]
"""

from __future__ import annotations
import json
from typing import Any, Dict, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from streamsim.market.order_book import OrderEntry, OrderKey, Side
from streamsim.simulator.errors import DecodeError

TABLE_ORDER_BOOK_L2 = "orderBookL2"

ACTION_PARTIAL = "partial"
ACTION_INSERT = "insert"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"


class BitmexSubscribe(BaseModel):
    """Response to a subscribe request. The echoed request is not read."""
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    subscribe: str = ""


class BitmexRoot(BaseModel):
    """Any server frame: table data, info greeting or error."""
    model_config = ConfigDict(extra="ignore")

    table: str = ""
    action: str = ""
    data: Any = None
    info: Any = None
    error: Any = None


class BitmexOrderBookL2Element(BaseModel):
    """
    One order of an orderBookL2 delta.

    Deletes omit price and size, updates omit price; absent fields read as 0.
    """
    model_config = ConfigDict(extra="ignore")

    symbol: str
    id: int
    side: Side
    size: int = Field(default=0, ge=0)
    price: float = 0.0

    @property
    def key(self) -> OrderKey:
        return OrderKey(self.symbol, self.side, self.id)


_ELEMENTS = TypeAdapter(List[BitmexOrderBookL2Element])
_CHANNEL_LIST = TypeAdapter(List[str])


def _first_error(e: ValidationError) -> str:
    errors = e.errors()
    if not errors:
        return str(e)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg', '')}" if loc else err.get("msg", "")


def decode_json(line: bytes | str, structure: str) -> Any:
    try:
        return json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(structure, str(e)) from e


def decode_subscribe(payload: Any) -> BitmexSubscribe:
    try:
        return BitmexSubscribe.model_validate(payload)
    except ValidationError as e:
        raise DecodeError("subscribe response", _first_error(e)) from e


def decode_root(payload: Any) -> BitmexRoot:
    try:
        return BitmexRoot.model_validate(payload)
    except ValidationError as e:
        raise DecodeError("message root", _first_error(e)) from e


def decode_order_book_elements(data: Any) -> List[BitmexOrderBookL2Element]:
    try:
        return _ELEMENTS.validate_python(data)
    except ValidationError as e:
        raise DecodeError("orderBookL2 data", _first_error(e)) from e


def decode_channel_list(line: bytes | str) -> List[str]:
    payload = decode_json(line, "subscribed channel list")
    try:
        return _CHANNEL_LIST.validate_python(payload)
    except ValidationError as e:
        raise DecodeError("subscribed channel list", _first_error(e)) from e


# =============================================================================
# Encoding
# =============================================================================

def _dumps(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _wire_price(price: float) -> float | int:
    # Bitmex prints whole prices without a fractional part
    if float(price).is_integer():
        return int(price)
    return price


def element_dict(key: OrderKey, entry: OrderEntry) -> Dict[str, Any]:
    return {
        "symbol": key.symbol,
        "id": key.order_id,
        "side": key.side.value,
        "size": entry.size,
        "price": _wire_price(entry.price),
    }


def encode_elements(items: Sequence[Tuple[OrderKey, OrderEntry]]) -> bytes:
    """Encode (key, entry) pairs already in emission order."""
    return _dumps([element_dict(key, entry) for key, entry in items])


def encode_subscribe(channel: str) -> bytes:
    return _dumps({
        "success": True,
        "subscribe": channel,
        "request": {"op": "subscribe", "args": [channel]},
    })


def encode_partial(table: str, items: Sequence[Tuple[OrderKey, OrderEntry]]) -> bytes:
    return _dumps({
        "table": table,
        "action": ACTION_PARTIAL,
        "data": [element_dict(key, entry) for key, entry in items],
    })


def encode_channel_list(channels: Sequence[str]) -> bytes:
    return _dumps(list(channels))
