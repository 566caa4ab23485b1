from typing import Final

from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

PROGRAM_ID: Final[Pubkey] = Pubkey.from_string("FFFFaFpoGXkYsidMpWTK6W2BeZ7FEfcYkg476zPFsLnS")

# every derived account of the program shares the same domain tag
SEED_PREFIX: Final[bytes] = b"challenge"

MAX_SEED_LEN = 32
MAX_SEEDS = 16

HASH_BYTES = 32
PUBKEY_BYTES = 32

MAX_SUPPORTED_SOLUTIONS = 255

MAX_U8 = 2 ** 8 - 1
MAX_U64 = 2 ** 64 - 1

LAMPORTS_PER_SOL = 1_000_000_000

# authority + id len prefix + started + finished + admit_cost + tries_per_admit + redeem + solving + solutions len
EMPTY_CHALLENGE_SIZE_WITH_EMPTY_ID = 32 + 4 + 1 + 1 + 8 + 1 + 32 + 1 + 4

# authority + challenge_pda + tries_remaining + redeemed
CHALLENGER_SIZE = 32 + 32 + 1 + 1

# challenge_pda + pda
REDEEM_SIZE = 32 + 32
