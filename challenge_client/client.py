import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from challenge_client.config import ChallengeClientConfig
from challenge_client.constants import PROGRAM_ID
from challenge_client.state.challenge import Challenge
from challenge_client.state.challenger import Challenger
from challenge_client.state.codec import (
    AccountKind,
    Entity,
    build_filters,
    decode,
    decode_scanned,
)
from challenge_client.state.redeem import Redeem
from challenge_client.stats import ChallengeWithStats, aggregate_stats
from challenge_client.utils.args import check_pubkey
from challenge_client.utils.managed_task_pool import ManagedTaskPool
from challenge_client.utils.transport.base import (
    Operations,
    SubmitResult,
    VendorBaseTransport,
)
from challenge_client.utils.transport.rpc import RpcTransport

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_FETCHES = 10


class ChallengeClient:
    """
    Read and write access to the challenge program through a transport.
    Reads decode raw account bytes into entities; stats are recomputed on every call.
    `submit` reports failures in its result; reads raise AccountNotFoundException, TransportException
    or DecodeException.
    """

    def __init__(
        self,
        transport: VendorBaseTransport,
        program_id: Pubkey = PROGRAM_ID,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
    ) -> None:
        self._transport = transport
        self._program_id = program_id
        self._max_concurrent_fetches = max_concurrent_fetches

    @classmethod
    def from_config(cls, config: ChallengeClientConfig) -> "ChallengeClient":
        return cls(
            RpcTransport(config.rpc_config),
            program_id=config.program_id,
            max_concurrent_fetches=config.rpc_config.max_concurrent_fetches,
        )

    @property
    def program_id(self) -> Pubkey:
        return self._program_id

    @property
    def transport(self) -> VendorBaseTransport:
        return self._transport

    async def __aenter__(self) -> "ChallengeClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._transport.close()

    async def submit(self, operations: Operations, signers: Sequence[Keypair]) -> SubmitResult:
        LOGGER.debug("Submitting %d operation(s) signed by %s", len(operations), [str(s.pubkey()) for s in signers])
        result = await self._transport.submit(operations, signers)
        if result.ok:
            LOGGER.debug("Submitted transaction %s", result.signature)
        else:
            LOGGER.info("Submission failed: %s", result.error)
        return result

    async def fetch(self, kind: AccountKind, address: Pubkey) -> Entity:
        data = await self._transport.fetch_account(check_pubkey("address", address))
        return decode(kind, data)

    async def get_challenge(self, address: Pubkey) -> Challenge:
        challenge = await self.fetch(AccountKind.CHALLENGE, address)
        assert isinstance(challenge, Challenge)
        return challenge

    async def get_challenger(self, address: Pubkey) -> Challenger:
        challenger = await self.fetch(AccountKind.CHALLENGER, address)
        assert isinstance(challenger, Challenger)
        return challenger

    async def scan(self, kind: AccountKind, filters: Optional[Mapping[str, Any]] = None) -> List[Tuple[Pubkey, Entity]]:
        account_filters = build_filters(kind, filters or {})
        accounts = await self._transport.scan_accounts(self._program_id, account_filters)
        LOGGER.debug("Scan for %s with %s returned %d account(s)", kind.value, account_filters, len(accounts))
        return decode_scanned(kind, accounts)

    async def find_challenges(self) -> List[Tuple[Pubkey, Challenge]]:
        return self._only(Challenge, await self.scan(AccountKind.CHALLENGE))

    async def find_challenges_by_creator(self, creator: Pubkey) -> List[Tuple[Pubkey, Challenge]]:
        return self._only(Challenge, await self.scan(AccountKind.CHALLENGE, {"authority": creator}))

    async def find_admitted_challengers(self, challenge_pda: Pubkey) -> List[Tuple[Pubkey, Challenger]]:
        return self._only(Challenger, await self.scan(AccountKind.CHALLENGER, {"challenge_pda": challenge_pda}))

    @staticmethod
    def _only(entity_type: Any, entities: List[Tuple[Pubkey, Entity]]) -> List[Tuple[Pubkey, Any]]:
        return [(address, entity) for address, entity in entities if isinstance(entity, entity_type)]

    async def aggregate(self, challenge_address: Pubkey) -> ChallengeWithStats:
        challenge = await self.get_challenge(challenge_address)
        challengers = await self.find_admitted_challengers(challenge_address)
        stats = aggregate_stats(challenge_address, challenge, challengers)
        LOGGER.info(
            "Challenge %s(%s): admitted=%d redeemed=%d",
            challenge.id,
            challenge_address,
            stats.admitted,
            stats.redeemed,
        )
        return stats

    async def find_by_creator_with_stats(self, creator: Pubkey) -> List[ChallengeWithStats]:
        challenges = await self.find_challenges_by_creator(creator)
        address_to_stats: Dict[Pubkey, ChallengeWithStats] = {}

        def make_task(challenge_pda: Pubkey, challenge: Challenge) -> Any:
            async def task() -> None:
                challengers = await self.find_admitted_challengers(challenge_pda)
                address_to_stats[challenge_pda] = aggregate_stats(challenge_pda, challenge, challengers)

            return task

        # the first failing scan aborts the whole aggregation
        async with ManagedTaskPool(self._max_concurrent_fetches) as pool:
            for challenge_pda, challenge in challenges:
                pool(make_task(challenge_pda, challenge))
        return [address_to_stats[challenge_pda] for challenge_pda, _ in challenges]

    async def get_balance(self, address: Pubkey) -> int:
        return await self._transport.get_balance(check_pubkey("address", address))

    async def get_reward_balance(self, challenge: Challenge, challenger: Pubkey) -> int:
        # the mint recorded at creation, not a re-derived one
        redeem = Redeem(challenge_pda=challenge.pda(self._program_id), pda=challenge.redeem)
        return await self._transport.get_token_balance(redeem.ata(check_pubkey("challenger", challenger)))
