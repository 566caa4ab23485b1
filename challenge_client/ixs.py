import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Final, Mapping, NamedTuple, Optional, Sequence, Tuple

from borsh_construct import U8, U64, CStruct, String, Vec
from construct import Construct
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from challenge_client.constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from challenge_client.exceptions import DecodeException, InvalidArgumentException
from challenge_client.state.layouts import COMMITMENT, PUBKEY, build_record, parse_record
from challenge_client.state.redeem import Redeem
from challenge_client.utils.args import (
    check_challenge_id,
    check_commitment,
    check_commitments,
    check_pubkey,
    check_u8,
    check_u64,
)
from challenge_client.utils.pda import pda_for_challenge, pda_for_challenger, pda_for_redeem
from challenge_client.utils.solution import hash_solution_challenger_sends, hash_solutions

LOGGER = logging.getLogger(__name__)


class Operation(IntEnum):
    # the value is the instruction discriminator, i.e. the first byte of the instruction data
    CREATE_CHALLENGE = 0
    ADD_SOLUTIONS = 1
    START_CHALLENGE = 2
    ADMIT_CHALLENGER = 3
    REDEEM = 4


class AccountRole(NamedTuple):
    name: str
    writable: bool
    signer: bool
    # program accounts have a fixed address
    default: Optional[Pubkey] = None


class OperationLayout(NamedTuple):
    accounts: Tuple[AccountRole, ...]
    args: Construct


_SYSTEM_PROGRAM = AccountRole("system_program", writable=False, signer=False, default=SYSTEM_PROGRAM_ID)
_TOKEN_PROGRAM = AccountRole("token_program", writable=False, signer=False, default=TOKEN_PROGRAM_ID)
_ASSOCIATED_TOKEN_PROGRAM = AccountRole(
    "associated_token_program", writable=False, signer=False, default=ASSOCIATED_TOKEN_PROGRAM_ID
)

OPERATION_LAYOUTS: Final[Dict[Operation, OperationLayout]] = {
    Operation.CREATE_CHALLENGE: OperationLayout(
        accounts=(
            AccountRole("payer", writable=True, signer=True),
            AccountRole("creator", writable=False, signer=False),
            AccountRole("challenge_pda", writable=True, signer=False),
            AccountRole("redeem_pda", writable=True, signer=False),
            _TOKEN_PROGRAM,
            _SYSTEM_PROGRAM,
        ),
        args=CStruct(
            "id" / String,
            "admit_cost" / U64,
            "tries_per_admit" / U8,
            "redeem" / PUBKEY,
            "solutions" / Vec(COMMITMENT),
        ),
    ),
    Operation.ADD_SOLUTIONS: OperationLayout(
        accounts=(
            AccountRole("payer", writable=True, signer=True),
            AccountRole("creator", writable=False, signer=True),
            AccountRole("challenge_pda", writable=True, signer=False),
            _SYSTEM_PROGRAM,
        ),
        args=CStruct(
            "id" / String,
            "solutions" / Vec(COMMITMENT),
        ),
    ),
    Operation.START_CHALLENGE: OperationLayout(
        accounts=(
            AccountRole("creator", writable=False, signer=True),
            AccountRole("challenge_pda", writable=True, signer=False),
        ),
        args=CStruct("id" / String),
    ),
    Operation.ADMIT_CHALLENGER: OperationLayout(
        accounts=(
            AccountRole("payer", writable=True, signer=True),
            AccountRole("creator", writable=True, signer=False),
            AccountRole("challenge_pda", writable=False, signer=False),
            AccountRole("challenger", writable=False, signer=False),
            AccountRole("challenger_pda", writable=True, signer=False),
            _SYSTEM_PROGRAM,
        ),
        args=CStruct("challenge_pda" / PUBKEY),
    ),
    Operation.REDEEM: OperationLayout(
        accounts=(
            AccountRole("payer", writable=True, signer=True),
            AccountRole("challenge_pda", writable=True, signer=False),
            AccountRole("challenger", writable=False, signer=True),
            AccountRole("challenger_pda", writable=True, signer=False),
            AccountRole("redeem", writable=True, signer=False),
            AccountRole("redeem_ata", writable=True, signer=False),
            _TOKEN_PROGRAM,
            _ASSOCIATED_TOKEN_PROGRAM,
            _SYSTEM_PROGRAM,
        ),
        args=CStruct("solution" / COMMITMENT),
    ),
}


@dataclass(frozen=True)
class OperationDescriptor:
    """
    An encoded, not yet submitted operation. `addresses` holds every account by its role name,
    including the derived ones, so callers don't need to derive them a second time.
    """

    operation: Operation
    program_id: Pubkey
    accounts: Tuple[AccountMeta, ...]
    args: Mapping[str, Any]
    data: bytes
    addresses: Mapping[str, Pubkey] = field(default_factory=dict)

    @property
    def discriminator(self) -> int:
        return int(self.operation)

    def to_instruction(self) -> Instruction:
        return Instruction(self.program_id, self.data, list(self.accounts))


def encode_operation(
    operation: Operation,
    accounts: Mapping[str, Pubkey],
    args: Mapping[str, Any],
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    layout = OPERATION_LAYOUTS[operation]
    addresses: Dict[str, Pubkey] = {}
    metas = []
    for role in layout.accounts:
        address = accounts.get(role.name, role.default)
        if address is None:
            raise InvalidArgumentException(f"{operation.name} is missing the {role.name} account")
        address = check_pubkey(role.name, address)
        addresses[role.name] = address
        metas.append(AccountMeta(address, is_signer=role.signer, is_writable=role.writable))
    data = bytes([operation]) + build_record(layout.args, args, operation.name)
    LOGGER.debug("Encoded %s with %d accounts and %d bytes of data", operation.name, len(metas), len(data))
    return OperationDescriptor(
        operation=operation,
        program_id=program_id,
        accounts=tuple(metas),
        args=dict(args),
        data=data,
        addresses=addresses,
    )


def decode_operation(data: bytes) -> Tuple[Operation, Dict[str, Any]]:
    if len(data) == 0:
        raise DecodeException("instruction data is empty")
    try:
        operation = Operation(data[0])
    except ValueError as e:
        raise DecodeException(f"unknown instruction discriminator {data[0]}") from e
    layout = OPERATION_LAYOUTS[operation]
    payload = data[1:]
    parsed = parse_record(layout.args, payload, operation.name)
    args = {name: (list(value) if name == "solutions" else value) for name, value in parsed.items() if name[0] != "_"}
    return operation, args


# -----------------
# Create Challenge
# -----------------
def create_challenge(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    admit_cost: int,
    tries_per_admit: int,
    solutions: Sequence[str] = tuple(),
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    """
    Creates a new challenge, invoked once by its creator.

    `solutions` are plaintext; only their commitments are transmitted. More solutions can be added later
    via `add_solutions`, which is needed once they no longer fit into a single transaction.
    """
    challenge_id = check_challenge_id(challenge_id)
    challenge_pda = pda_for_challenge(creator, challenge_id, program_id)
    redeem_pda = pda_for_redeem(challenge_pda, program_id)
    return create_challenge_with_commitments(
        payer,
        creator,
        challenge_id,
        admit_cost,
        tries_per_admit,
        hash_solutions(solutions),
        program_id=program_id,
        challenge_pda=challenge_pda,
        redeem_pda=redeem_pda,
    )


def create_challenge_with_commitments(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    admit_cost: int,
    tries_per_admit: int,
    commitments: Sequence[bytes],
    program_id: Pubkey = PROGRAM_ID,
    challenge_pda: Optional[Pubkey] = None,
    redeem_pda: Optional[Pubkey] = None,
) -> OperationDescriptor:
    challenge_id = check_challenge_id(challenge_id)
    if challenge_pda is None:
        challenge_pda = pda_for_challenge(creator, challenge_id, program_id)
    if redeem_pda is None:
        redeem_pda = pda_for_redeem(challenge_pda, program_id)
    return encode_operation(
        Operation.CREATE_CHALLENGE,
        accounts={
            "payer": payer,
            "creator": creator,
            "challenge_pda": challenge_pda,
            "redeem_pda": redeem_pda,
        },
        args={
            "id": challenge_id,
            "admit_cost": check_u64("admit_cost", admit_cost),
            "tries_per_admit": check_u8("tries_per_admit", tries_per_admit),
            "redeem": redeem_pda,
            "solutions": check_commitments("solutions", commitments),
        },
        program_id=program_id,
    )


# -----------------
# Add Solutions
# -----------------
def add_solutions(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    solutions: Sequence[str],
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    """Appends solutions after the existing ones; existing solutions stay in place."""
    challenge_id = check_challenge_id(challenge_id)
    return encode_operation(
        Operation.ADD_SOLUTIONS,
        accounts={
            "payer": payer,
            "creator": creator,
            "challenge_pda": pda_for_challenge(creator, challenge_id, program_id),
        },
        args={"id": challenge_id, "solutions": hash_solutions(solutions)},
        program_id=program_id,
    )


# -----------------
# Start Challenge
# -----------------
def start_challenge(creator: Pubkey, challenge_id: str, program_id: Pubkey = PROGRAM_ID) -> OperationDescriptor:
    challenge_id = check_challenge_id(challenge_id)
    return encode_operation(
        Operation.START_CHALLENGE,
        accounts={
            "creator": creator,
            "challenge_pda": pda_for_challenge(creator, challenge_id, program_id),
        },
        args={"id": challenge_id},
        program_id=program_id,
    )


# -----------------
# Admit Challenger
# -----------------
def admit_challenger(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    challenger: Pubkey,
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    challenge_id = check_challenge_id(challenge_id)
    challenge_pda = pda_for_challenge(creator, challenge_id, program_id)
    return encode_operation(
        Operation.ADMIT_CHALLENGER,
        accounts={
            "payer": payer,
            "creator": creator,
            "challenge_pda": challenge_pda,
            "challenger": challenger,
            "challenger_pda": pda_for_challenger(challenge_pda, challenger, program_id),
        },
        args={"challenge_pda": challenge_pda},
        program_id=program_id,
    )


# -----------------
# Redeem
# -----------------
def redeem(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    challenger: Pubkey,
    solution: str,
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    """
    Attempts to redeem by providing a plaintext solution. Every attempt costs the challenger a try,
    whether it is correct or not; a correct one mints a redeem token to the challenger's ATA.
    """
    return redeem_with_attempt(
        payer, creator, challenge_id, challenger, hash_solution_challenger_sends(solution), program_id=program_id
    )


def redeem_with_attempt(
    payer: Pubkey,
    creator: Pubkey,
    challenge_id: str,
    challenger: Pubkey,
    attempt: bytes,
    program_id: Pubkey = PROGRAM_ID,
) -> OperationDescriptor:
    challenge_id = check_challenge_id(challenge_id)
    challenge_pda = pda_for_challenge(creator, challenge_id, program_id)
    reward = Redeem.for_challenge(challenge_pda, program_id)
    return encode_operation(
        Operation.REDEEM,
        accounts={
            "payer": payer,
            "challenge_pda": challenge_pda,
            "challenger": challenger,
            "challenger_pda": pda_for_challenger(challenge_pda, check_pubkey("challenger", challenger), program_id),
            "redeem": reward.pda,
            "redeem_ata": reward.ata(challenger),
        },
        args={"solution": check_commitment("solution", attempt)},
        program_id=program_id,
    )
