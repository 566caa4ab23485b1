from typing import Iterable, List

from hexbytes.main import HexBytes
from solders.pubkey import Pubkey

from challenge_client.constants import HASH_BYTES, MAX_U8, MAX_U64
from challenge_client.exceptions import InvalidArgumentException


def check_pubkey(name: str, value: object) -> Pubkey:
    if not isinstance(value, Pubkey):
        raise InvalidArgumentException(f"{name} must be a Pubkey, not {type(value).__name__}")
    return value


def check_challenge_id(value: object) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentException(f"challenge id must be a str, not {type(value).__name__}")
    if len(value) == 0:
        raise InvalidArgumentException("challenge id must not be empty")
    return value


def _check_int(name: str, value: object, max_value: int) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentException(f"{name} must be an int, not {type(value).__name__}")
    if not 0 <= value <= max_value:
        raise InvalidArgumentException(f"{name}({value}) is outside of [0, {max_value}]")
    return value


def check_u8(name: str, value: object) -> int:
    return _check_int(name, value, MAX_U8)


def check_u64(name: str, value: object) -> int:
    return _check_int(name, value, MAX_U64)


def check_commitment(name: str, value: object) -> HexBytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != HASH_BYTES:
        raise InvalidArgumentException(f"{name} must be {HASH_BYTES} bytes")
    return HexBytes(value)


def check_commitments(name: str, values: Iterable[object]) -> List[HexBytes]:
    return [check_commitment(f"{name}[{i}]", value) for i, value in enumerate(values)]
