"""
Commitment scheme for challenge solutions.

Plaintext solutions never go on chain. A challenger transmits the sha256 digest of the UTF-8 encoded
plaintext (the attempt) and the program stores sha256(attempt) for every solution (the commitment).
When redeeming, the program hashes the transmitted attempt once more and compares it byte for byte with
the stored commitment, so a commitment computed here matches the attempt computed here for the same
plaintext, and for no other.
"""
import hashlib
from typing import Iterable, List

from hexbytes.main import HexBytes

from challenge_client.constants import HASH_BYTES
from challenge_client.exceptions import InvalidArgumentException


def _sha256(data: bytes) -> HexBytes:
    return HexBytes(hashlib.sha256(data).digest())


def _plaintext_bytes(solution: str) -> bytes:
    if not isinstance(solution, str):
        raise InvalidArgumentException(f"solution must be a str, not {type(solution).__name__}")
    return solution.encode("utf-8")


def hash_solution_challenger_sends(solution: str) -> HexBytes:
    return _sha256(_plaintext_bytes(solution))


def commitment_for_attempt(attempt: bytes) -> HexBytes:
    if len(attempt) != HASH_BYTES:
        raise InvalidArgumentException(f"attempt must be {HASH_BYTES} bytes, got {len(attempt)}")
    return _sha256(bytes(attempt))


def hash_solution(solution: str) -> HexBytes:
    return commitment_for_attempt(hash_solution_challenger_sends(solution))


def hash_solutions(solutions: Iterable[str]) -> List[HexBytes]:
    # order is preserved and duplicates are kept, the program appends in the order given
    if isinstance(solutions, str):
        raise InvalidArgumentException("solutions must be a sequence of str, not a single str")
    return [hash_solution(solution) for solution in solutions]


def is_matching_attempt(attempt: bytes, commitment: bytes) -> bool:
    return commitment_for_attempt(attempt) == HexBytes(commitment)
