import logging
from enum import Enum
from typing import Any, Dict, Final, List, Mapping, NamedTuple, Optional, Tuple, Type, Union

from borsh_construct import U8, Bool
from construct import Construct
from solders.pubkey import Pubkey

from challenge_client.constants import CHALLENGER_SIZE, REDEEM_SIZE
from challenge_client.exceptions import DecodeException, InvalidArgumentException
from challenge_client.state.challenge import Challenge
from challenge_client.state.challenger import Challenger
from challenge_client.state.layouts import PUBKEY, build_record
from challenge_client.state.redeem import Redeem
from challenge_client.utils.args import check_pubkey

LOGGER = logging.getLogger(__name__)

Entity = Union[Challenge, Challenger, Redeem]


class AccountKind(Enum):
    CHALLENGE = "Challenge"
    CHALLENGER = "Challenger"
    REDEEM = "Redeem"


ENTITY_TYPES: Final[Dict[AccountKind, Type[Any]]] = {
    AccountKind.CHALLENGE: Challenge,
    AccountKind.CHALLENGER: Challenger,
    AccountKind.REDEEM: Redeem,
}

# None when the record has a variable length
ACCOUNT_SIZES: Final[Dict[AccountKind, Optional[int]]] = {
    AccountKind.CHALLENGE: None,
    AccountKind.CHALLENGER: CHALLENGER_SIZE,
    AccountKind.REDEEM: REDEEM_SIZE,
}


class FixedField(NamedTuple):
    offset: int
    layout: Construct


# only fields that precede the first variable length field can be matched server side
FIXED_FIELDS: Final[Dict[AccountKind, Dict[str, FixedField]]] = {
    AccountKind.CHALLENGE: {
        "authority": FixedField(0, PUBKEY),
    },
    AccountKind.CHALLENGER: {
        "authority": FixedField(0, PUBKEY),
        "challenge_pda": FixedField(32, PUBKEY),
        "tries_remaining": FixedField(64, U8),
        "redeemed": FixedField(65, Bool),
    },
    AccountKind.REDEEM: {
        "challenge_pda": FixedField(0, PUBKEY),
        "pda": FixedField(32, PUBKEY),
    },
}


class MemcmpFilter(NamedTuple):
    offset: int
    data: bytes


class AccountFilters(NamedTuple):
    memcmp: Tuple[MemcmpFilter, ...]
    data_size: Optional[int]


def decode(kind: AccountKind, data: bytes) -> Entity:
    entity = ENTITY_TYPES[kind].from_bytes(data)
    assert isinstance(entity, (Challenge, Challenger, Redeem))
    return entity


def encode(entity: Entity) -> bytes:
    return entity.to_bytes()


def encode_from_args(kind: AccountKind, **kwargs: Any) -> bytes:
    return encode(ENTITY_TYPES[kind].from_args(**kwargs))


def kind_of(entity: Entity) -> AccountKind:
    for kind, entity_type in ENTITY_TYPES.items():
        if isinstance(entity, entity_type):
            return kind
    raise InvalidArgumentException(f"{type(entity).__name__} is not a program account")


def build_filters(kind: AccountKind, filters: Mapping[str, Any]) -> AccountFilters:
    memcmp: List[MemcmpFilter] = []
    fixed_fields = FIXED_FIELDS[kind]
    for name, value in filters.items():
        if name not in fixed_fields:
            raise InvalidArgumentException(
                f"{kind.value}.{name} cannot be filtered on; filterable fields are {sorted(fixed_fields)}"
            )
        field = fixed_fields[name]
        if field.layout is PUBKEY:
            value = check_pubkey(name, value)
        memcmp.append(MemcmpFilter(field.offset, build_record(field.layout, value, f"{kind.value}.{name}")))
    memcmp.sort(key=lambda f: f.offset)
    return AccountFilters(memcmp=tuple(memcmp), data_size=ACCOUNT_SIZES[kind])


def matches_filters(data: bytes, filters: AccountFilters) -> bool:
    if filters.data_size is not None and len(data) != filters.data_size:
        return False
    for memcmp in filters.memcmp:
        if data[memcmp.offset : memcmp.offset + len(memcmp.data)] != memcmp.data:
            return False
    return True


def decode_scanned(
    kind: AccountKind, accounts: List[Tuple[Pubkey, bytes]]
) -> List[Tuple[Pubkey, Entity]]:
    # accounts of another kind can share the filtered prefix; those are skipped rather than failing the scan.
    # Without a size filter that is expected, with one it points at a corrupt account
    log_level = logging.DEBUG if ACCOUNT_SIZES[kind] is None else logging.WARNING
    decoded: List[Tuple[Pubkey, Entity]] = []
    for address, data in accounts:
        try:
            decoded.append((address, decode(kind, data)))
        except DecodeException:
            LOGGER.log(log_level, "Skipping account %s: %d bytes do not decode as %s", address, len(data), kind.value)
    return decoded
