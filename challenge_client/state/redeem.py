from dataclasses import dataclass
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address

from challenge_client.constants import PROGRAM_ID, REDEEM_SIZE
from challenge_client.exceptions import DecodeException
from challenge_client.state.layouts import REDEEM_LAYOUT, build_record, parse_record
from challenge_client.utils.args import check_pubkey
from challenge_client.utils.pda import pda_for_challenge, pda_for_redeem


@dataclass(frozen=True)
class Redeem:
    """
    The reward mint of a challenge. Its address is derived from the challenge PDA and it is the mint
    authority whose tokens are sent to the challengers' associated token accounts on a correct attempt.
    """

    challenge_pda: Pubkey
    pda: Pubkey

    @classmethod
    def for_challenge(cls, challenge_pda: Pubkey, program_id: Pubkey = PROGRAM_ID) -> "Redeem":
        challenge_pda = check_pubkey("challenge_pda", challenge_pda)
        return cls(challenge_pda=challenge_pda, pda=pda_for_redeem(challenge_pda, program_id))

    @classmethod
    def for_challenge_with(cls, creator: Pubkey, challenge_id: str, program_id: Pubkey = PROGRAM_ID) -> "Redeem":
        return cls.for_challenge(pda_for_challenge(creator, challenge_id, program_id), program_id)

    @classmethod
    def from_args(
        cls, challenge_pda: Pubkey, pda: Optional[Pubkey] = None, program_id: Pubkey = PROGRAM_ID
    ) -> "Redeem":
        if pda is None:
            return cls.for_challenge(challenge_pda, program_id)
        return cls(challenge_pda=check_pubkey("challenge_pda", challenge_pda), pda=check_pubkey("pda", pda))

    size = REDEEM_SIZE

    def ata(self, receiver: Pubkey) -> Pubkey:
        return get_associated_token_address(check_pubkey("receiver", receiver), self.pda)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Redeem":
        if len(data) != REDEEM_SIZE:
            raise DecodeException(f"Redeem record should be {REDEEM_SIZE} bytes, got {len(data)}")
        parsed = parse_record(REDEEM_LAYOUT, data, "Redeem")
        return cls(challenge_pda=parsed.challenge_pda, pda=parsed.pda)

    def to_bytes(self) -> bytes:
        return build_record(REDEEM_LAYOUT, {"challenge_pda": self.challenge_pda, "pda": self.pda}, "Redeem")

    def pretty(self) -> Dict[str, Any]:
        return {"challenge_pda": str(self.challenge_pda), "pda": str(self.pda)}
