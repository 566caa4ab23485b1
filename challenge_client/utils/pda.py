import logging
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from challenge_client.constants import MAX_SEED_LEN, MAX_SEEDS, PROGRAM_ID, SEED_PREFIX
from challenge_client.exceptions import InvalidArgumentException

LOGGER = logging.getLogger(__name__)


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise InvalidArgumentException(f"InvalidSeeds: {len(seeds)} seeds exceed the maximum of {MAX_SEEDS}")
    for i, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise InvalidArgumentException(
                f"InvalidSeeds: seed {i} is {len(seed)} bytes long, the maximum is {MAX_SEED_LEN}"
            )


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey = PROGRAM_ID) -> Tuple[Pubkey, int]:
    # the bump search runs from 255 downwards until the address falls off the ed25519 curve
    _validate_seeds(seeds)
    address, bump = Pubkey.find_program_address(list(seeds), program_id)
    LOGGER.debug("Derived %s (bump %d) for program %s", address, bump, program_id)
    return address, bump


def _challenge_id_seed(challenge_id: str) -> bytes:
    if not isinstance(challenge_id, str):
        raise InvalidArgumentException(f"challenge id must be a str, not {type(challenge_id).__name__}")
    return challenge_id.encode("utf-8")


def _pubkey_seed(name: str, key: Pubkey) -> bytes:
    if not isinstance(key, Pubkey):
        raise InvalidArgumentException(f"{name} must be a Pubkey, not {type(key).__name__}")
    return bytes(key)


def challenge_seeds(creator: Pubkey, challenge_id: str) -> Tuple[bytes, ...]:
    return SEED_PREFIX, _pubkey_seed("creator", creator), _challenge_id_seed(challenge_id)


def challenger_seeds(challenge_pda: Pubkey, challenger: Pubkey) -> Tuple[bytes, ...]:
    return SEED_PREFIX, _pubkey_seed("challenge_pda", challenge_pda), _pubkey_seed("challenger", challenger)


def redeem_seeds(challenge_pda: Pubkey) -> Tuple[bytes, ...]:
    return SEED_PREFIX, _pubkey_seed("challenge_pda", challenge_pda)


def pda_for_challenge(creator: Pubkey, challenge_id: str, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
    return find_program_address(challenge_seeds(creator, challenge_id), program_id)[0]


def pda_for_challenger(challenge_pda: Pubkey, challenger: Pubkey, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
    return find_program_address(challenger_seeds(challenge_pda, challenger), program_id)[0]


def pda_for_redeem(challenge_pda: Pubkey, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
    return find_program_address(redeem_seeds(challenge_pda), program_id)[0]
