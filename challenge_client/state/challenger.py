from dataclasses import dataclass
from typing import Any, Dict

from solders.pubkey import Pubkey

from challenge_client.constants import CHALLENGER_SIZE, PROGRAM_ID
from challenge_client.exceptions import DecodeException
from challenge_client.state.layouts import CHALLENGER_LAYOUT, build_record, parse_record
from challenge_client.utils.args import check_pubkey, check_u8
from challenge_client.utils.pda import pda_for_challenger


@dataclass(frozen=True)
class Challenger:
    authority: Pubkey
    challenge_pda: Pubkey
    tries_remaining: int
    redeemed: bool

    @classmethod
    def from_args(cls, authority: Pubkey, challenge_pda: Pubkey, tries_remaining: int) -> "Challenger":
        return cls(
            authority=check_pubkey("authority", authority),
            challenge_pda=check_pubkey("challenge_pda", challenge_pda),
            tries_remaining=check_u8("tries_remaining", tries_remaining),
            redeemed=False,
        )

    size = CHALLENGER_SIZE

    def pda(self, program_id: Pubkey = PROGRAM_ID) -> Pubkey:
        return pda_for_challenger(self.challenge_pda, self.authority, program_id)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Challenger":
        if len(data) != CHALLENGER_SIZE:
            raise DecodeException(f"Challenger record should be {CHALLENGER_SIZE} bytes, got {len(data)}")
        parsed = parse_record(CHALLENGER_LAYOUT, data, "Challenger")
        return cls(
            authority=parsed.authority,
            challenge_pda=parsed.challenge_pda,
            tries_remaining=parsed.tries_remaining,
            redeemed=parsed.redeemed,
        )

    def to_bytes(self) -> bytes:
        return build_record(
            CHALLENGER_LAYOUT,
            {
                "authority": self.authority,
                "challenge_pda": self.challenge_pda,
                "tries_remaining": self.tries_remaining,
                "redeemed": self.redeemed,
            },
            "Challenger",
        )

    def pretty(self) -> Dict[str, Any]:
        return {
            "authority": str(self.authority),
            "challenge_pda": str(self.challenge_pda),
            "tries_remaining": self.tries_remaining,
            "redeemed": self.redeemed,
        }
