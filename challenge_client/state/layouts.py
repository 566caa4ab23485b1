from typing import Any

from borsh_construct import U8, U64, Bool, CStruct, String, Vec
from construct import Adapter, Bytes, Construct, ConstructError
from hexbytes.main import HexBytes
from solders.pubkey import Pubkey

from challenge_client.constants import HASH_BYTES, PUBKEY_BYTES
from challenge_client.exceptions import DecodeException, InvalidArgumentException


class _PubkeyAdapter(Adapter):  # type: ignore[misc]
    def _decode(self, obj: bytes, context: Any, path: Any) -> Pubkey:
        return Pubkey.from_bytes(bytes(obj))

    def _encode(self, obj: Pubkey, context: Any, path: Any) -> bytes:
        return bytes(obj)


class _CommitmentAdapter(Adapter):  # type: ignore[misc]
    def _decode(self, obj: bytes, context: Any, path: Any) -> HexBytes:
        return HexBytes(obj)

    def _encode(self, obj: bytes, context: Any, path: Any) -> bytes:
        return bytes(obj)


PUBKEY: Construct = _PubkeyAdapter(Bytes(PUBKEY_BYTES))
COMMITMENT: Construct = _CommitmentAdapter(Bytes(HASH_BYTES))

CHALLENGE_LAYOUT = CStruct(
    "authority" / PUBKEY,
    "id" / String,
    "started" / Bool,
    "finished" / Bool,
    "admit_cost" / U64,
    "tries_per_admit" / U8,
    "redeem" / PUBKEY,
    "solving" / U8,
    "solutions" / Vec(COMMITMENT),
)

CHALLENGER_LAYOUT = CStruct(
    "authority" / PUBKEY,
    "challenge_pda" / PUBKEY,
    "tries_remaining" / U8,
    "redeemed" / Bool,
)

REDEEM_LAYOUT = CStruct(
    "challenge_pda" / PUBKEY,
    "pda" / PUBKEY,
)


def parse_record(layout: Construct, data: bytes, name: str) -> Any:
    data = bytes(data)
    try:
        parsed = layout.parse(data)
        rebuilt = layout.build(parsed)
    except (ConstructError, UnicodeDecodeError) as e:
        raise DecodeException(f"{len(data)} bytes are not a valid {name} record") from e
    # catches trailing bytes and bool bytes other than 0 or 1, which borsh rejects
    if rebuilt != data:
        raise DecodeException(f"{len(data)} bytes are not a canonical {name} record")
    return parsed


def build_record(layout: Construct, values: Any, name: str) -> bytes:
    try:
        data = layout.build(values)
    except ConstructError as e:
        raise InvalidArgumentException(f"cannot serialize {name}: {e}") from e
    assert isinstance(data, bytes)
    return data
