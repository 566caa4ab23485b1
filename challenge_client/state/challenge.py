from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from hexbytes.main import HexBytes
from solders.pubkey import Pubkey

from challenge_client.constants import EMPTY_CHALLENGE_SIZE_WITH_EMPTY_ID, HASH_BYTES, PROGRAM_ID
from challenge_client.exceptions import DecodeException
from challenge_client.state.layouts import CHALLENGE_LAYOUT, build_record, parse_record
from challenge_client.utils.args import (
    check_challenge_id,
    check_commitments,
    check_pubkey,
    check_u8,
    check_u64,
)
from challenge_client.utils.pda import pda_for_challenge, pda_for_redeem
from challenge_client.utils.solution import is_matching_attempt


@dataclass(frozen=True)
class Challenge:
    """
    State of a challenge account, one per (authority, id).

    `solving` is the index of the solution that has to be presented next; the program only accepts
    `solutions[solving]` and marks the challenge `finished` once every solution was redeemed.
    """

    authority: Pubkey
    id: str
    started: bool
    finished: bool
    admit_cost: int
    tries_per_admit: int
    redeem: Pubkey
    solving: int
    solutions: Tuple[HexBytes, ...]

    @classmethod
    def from_args(
        cls,
        authority: Pubkey,
        challenge_id: str,
        admit_cost: int,
        tries_per_admit: int,
        solutions: Iterable[bytes] = tuple(),
        redeem: Optional[Pubkey] = None,
        program_id: Pubkey = PROGRAM_ID,
    ) -> "Challenge":
        # mirrors the state the program initializes on CreateChallenge
        authority = check_pubkey("authority", authority)
        challenge_id = check_challenge_id(challenge_id)
        if redeem is None:
            redeem = pda_for_redeem(pda_for_challenge(authority, challenge_id, program_id), program_id)
        return cls(
            authority=authority,
            id=challenge_id,
            started=False,
            finished=False,
            admit_cost=check_u64("admit_cost", admit_cost),
            tries_per_admit=check_u8("tries_per_admit", tries_per_admit),
            redeem=check_pubkey("redeem", redeem),
            solving=0,
            solutions=tuple(check_commitments("solutions", solutions)),
        )

    @staticmethod
    def needed_size(challenge_id: str, solutions_len: int) -> int:
        return EMPTY_CHALLENGE_SIZE_WITH_EMPTY_ID + len(challenge_id.encode("utf-8")) + solutions_len * HASH_BYTES

    @property
    def size(self) -> int:
        return self.needed_size(self.id, len(self.solutions))

    def pda(self, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
        return pda_for_challenge(self.authority, self.id, program_id)

    def redeem_pda(self, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
        return pda_for_redeem(self.pda(program_id), program_id)

    def current_solution(self) -> Optional[HexBytes]:
        if self.solving < len(self.solutions):
            return self.solutions[self.solving]
        return None

    def is_solution_correct(self, attempt: bytes) -> bool:
        current = self.current_solution()
        if current is None:
            return False
        return is_matching_attempt(attempt, current)

    def with_solutions(self, extra_solutions: Sequence[bytes]) -> "Challenge":
        return replace(self, solutions=self.solutions + tuple(check_commitments("solutions", extra_solutions)))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Challenge":
        parsed = parse_record(CHALLENGE_LAYOUT, data, "Challenge")
        challenge = cls(
            authority=parsed.authority,
            id=parsed.id,
            started=parsed.started,
            finished=parsed.finished,
            admit_cost=parsed.admit_cost,
            tries_per_admit=parsed.tries_per_admit,
            redeem=parsed.redeem,
            solving=parsed.solving,
            solutions=tuple(parsed.solutions),
        )
        if challenge.size != len(data):
            raise DecodeException(f"Challenge record should be {challenge.size} bytes, got {len(data)}")
        return challenge

    def to_bytes(self) -> bytes:
        return build_record(
            CHALLENGE_LAYOUT,
            {
                "authority": self.authority,
                "id": self.id,
                "started": self.started,
                "finished": self.finished,
                "admit_cost": self.admit_cost,
                "tries_per_admit": self.tries_per_admit,
                "redeem": self.redeem,
                "solving": self.solving,
                "solutions": list(self.solutions),
            },
            "Challenge",
        )

    def pretty(self) -> Dict[str, Any]:
        return {
            "authority": str(self.authority),
            "id": self.id,
            "started": self.started,
            "finished": self.finished,
            "admit_cost": self.admit_cost,
            "tries_per_admit": self.tries_per_admit,
            "redeem": str(self.redeem),
            "solving": self.solving,
            "solutions": [solution.hex() for solution in self.solutions],
        }
