from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Tuple

from solders.pubkey import Pubkey

from challenge_client.constants import LAMPORTS_PER_SOL
from challenge_client.state.challenge import Challenge
from challenge_client.state.challenger import Challenger


@dataclass(frozen=True)
class ChallengeWithStats:
    """
    A point in time view of a challenge and the challengers admitted to it, keyed by challenger PDA.
    It is recomputed for every query and never treated as authoritative state.
    """

    challenge_pda: Pubkey
    challenge: Challenge
    challengers: Mapping[Pubkey, Challenger]
    redeemers: Mapping[Pubkey, Challenger] = field(init=False)

    def __post_init__(self) -> None:
        redeemers = {address: challenger for address, challenger in self.challengers.items() if challenger.redeemed}
        object.__setattr__(self, "redeemers", redeemers)

    @property
    def admitted(self) -> int:
        return len(self.challengers)

    @property
    def redeemed(self) -> int:
        return len(self.redeemers)

    @property
    def solving(self) -> int:
        # admitted, but not solved yet
        return self.admitted - self.redeemed

    @property
    def fees_paid(self) -> int:
        return self.admitted * self.challenge.admit_cost

    @property
    def fees_paid_sol(self) -> int:
        return self.fees_paid // LAMPORTS_PER_SOL

    def pretty(self) -> Dict[str, Any]:
        return {
            "address": str(self.challenge_pda),
            "challenge": self.challenge.pretty(),
            "challengers": {str(address): challenger.pretty() for address, challenger in self.challengers.items()},
            "admitted": self.admitted,
            "redeemed": self.redeemed,
            "solving": self.solving,
            "fees_paid": self.fees_paid,
            "fees_paid_sol": self.fees_paid_sol,
        }


def aggregate_stats(
    challenge_pda: Pubkey,
    challenge: Challenge,
    challengers: Iterable[Tuple[Pubkey, Challenger]],
) -> ChallengeWithStats:
    # later entries for the same address win, the scan has no ordering guarantee anyway
    return ChallengeWithStats(
        challenge_pda=challenge_pda,
        challenge=challenge,
        challengers=dict(challengers),
    )
