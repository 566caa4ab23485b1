from dataclasses import dataclass

from solders.pubkey import Pubkey

from challenge_client.constants import PROGRAM_ID


@dataclass(frozen=True)
class RpcConfig:
    rpc_url: str
    commitment: str = "confirmed"
    timeout_seconds: float = 30.0
    # upper bound on concurrent account scans when aggregating stats
    max_concurrent_fetches: int = 10


@dataclass(frozen=True)
class ChallengeClientConfig:
    rpc_config: RpcConfig
    program_id: Pubkey = PROGRAM_ID
