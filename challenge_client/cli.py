import asyncio
import json
import logging
import os
from argparse import ArgumentParser, Namespace
from typing import Any

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from challenge_client.client import ChallengeClient
from challenge_client.config import ChallengeClientConfig, RpcConfig
from challenge_client.constants import PROGRAM_ID
from challenge_client.state.redeem import Redeem
from challenge_client.utils.pda import pda_for_challenge
from challenge_client.utils.solution import (
    hash_solution,
    hash_solution_challenger_sends,
)

DEFAULT_RPC_URL = "http://127.0.0.1:8899"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("challenge_client").setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_config() -> ChallengeClientConfig:
    load_dotenv()
    program_id = os.environ.get("CHALLENGE_PROGRAM_ID")
    return ChallengeClientConfig(
        rpc_config=RpcConfig(
            rpc_url=os.environ.get("CHALLENGE_RPC_URL", DEFAULT_RPC_URL),
            commitment=os.environ.get("CHALLENGE_COMMITMENT", "confirmed"),
            max_concurrent_fetches=int(os.environ.get("CHALLENGE_MAX_CONCURRENT_FETCHES", "10")),
        ),
        program_id=Pubkey.from_string(program_id) if program_id else PROGRAM_ID,
    )


def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2))


def hash_command(args: Namespace) -> None:
    _print(
        {
            "solution": args.solution,
            "attempt": hash_solution_challenger_sends(args.solution).hex(),
            "commitment": hash_solution(args.solution).hex(),
        }
    )


def pdas_command(args: Namespace, config: ChallengeClientConfig) -> None:
    creator = Pubkey.from_string(args.creator)
    challenge_pda = pda_for_challenge(creator, args.challenge_id, config.program_id)
    redeem = Redeem.for_challenge(challenge_pda, config.program_id)
    _print(
        {
            "challenge": str(challenge_pda),
            "redeem": str(redeem.pda),
        }
    )


async def challenge_command(args: Namespace, config: ChallengeClientConfig) -> None:
    async with ChallengeClient.from_config(config) as client:
        stats = await client.aggregate(Pubkey.from_string(args.address))
        _print(stats.pretty())


async def stats_command(args: Namespace, config: ChallengeClientConfig) -> None:
    async with ChallengeClient.from_config(config) as client:
        all_stats = await client.find_by_creator_with_stats(Pubkey.from_string(args.creator))
        _print([stats.pretty() for stats in all_stats])


def main() -> None:
    parser = ArgumentParser(description="Challenge program client")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log derivations and encodings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    hash_parser = subparsers.add_parser("hash", help="Print the attempt and the stored commitment of a solution")
    hash_parser.add_argument("solution", type=str)

    pdas_parser = subparsers.add_parser("pdas", help="Print the derived addresses of a challenge")
    pdas_parser.add_argument("creator", type=str)
    pdas_parser.add_argument("challenge_id", type=str)

    challenge_parser = subparsers.add_parser("challenge", help="Print one challenge with its stats")
    challenge_parser.add_argument("address", type=str)

    stats_parser = subparsers.add_parser("stats", help="Print all challenges of a creator with their stats")
    stats_parser.add_argument("creator", type=str)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    if args.command == "hash":
        hash_command(args)
        return
    config = _load_config()
    if args.command == "pdas":
        pdas_command(args, config)
        return
    if args.command == "challenge":
        asyncio.run(challenge_command(args, config))
        return
    if args.command == "stats":
        asyncio.run(stats_command(args, config))
        return


if __name__ == "__main__":
    main()
