import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from challenge_client.constants import CHALLENGER_SIZE, MAX_SUPPORTED_SOLUTIONS, PROGRAM_ID
from challenge_client.exceptions import (
    AccountNotFoundException,
    DecodeException,
    ProgramException,
    TransportException,
)
from challenge_client.ixs import OPERATION_LAYOUTS, Operation, decode_operation
from challenge_client.program_error import ChallengeErrorCode, program_exception_from_code
from challenge_client.state.challenge import Challenge
from challenge_client.state.challenger import Challenger
from challenge_client.state.codec import AccountFilters, matches_filters
from challenge_client.state.redeem import Redeem
from challenge_client.utils.pda import pda_for_challenge, pda_for_challenger
from challenge_client.utils.transport.base import (
    Operations,
    SubmitResult,
    VendorBaseTransport,
    to_instructions,
)

LOGGER = logging.getLogger(__name__)

CHALLENGE_ID = "fst-challenge"
ADMIT_COST = 1
TRIES_PER_ADMIT = 3
SOLUTIONS = ("hello", "world")
AIRDROP_LAMPORTS = 10_000_000_000


def _fail(code: ChallengeErrorCode, logs: List[str]) -> ProgramException:
    return program_exception_from_code(code, logs)


class _LedgerState:
    def __init__(
        self,
        accounts: Dict[Pubkey, bytes],
        lamports: Dict[Pubkey, int],
        mints: Set[Pubkey],
        token_balances: Dict[Pubkey, int],
    ) -> None:
        self.accounts = accounts
        self.lamports = lamports
        self.mints = mints
        self.token_balances = token_balances

    def copy(self) -> "_LedgerState":
        return _LedgerState(dict(self.accounts), dict(self.lamports), set(self.mints), dict(self.token_balances))


class FakeLedger(VendorBaseTransport):
    """
    In-memory stand-in for a validator running the challenge program. Batches are applied to a copy of the
    state that only replaces the live state when every instruction succeeded. Fees and rent are not charged.
    """

    def __init__(self, program_id: Pubkey = PROGRAM_ID) -> None:
        self.program_id = program_id
        self._state = _LedgerState({}, {}, set(), {})
        self._num_transactions = 0
        self.fail_challenger_scans = False

    def airdrop(self, address: Pubkey, lamports: int = AIRDROP_LAMPORTS) -> None:
        self._state.lamports[address] = self._state.lamports.get(address, 0) + lamports

    def set_account(self, address: Pubkey, data: bytes) -> None:
        self._state.accounts[address] = data

    async def submit(self, operations: Operations, signers: Sequence[Keypair]) -> SubmitResult:
        signed = {signer.pubkey() for signer in signers}
        instructions = to_instructions(operations)
        for instruction in instructions:
            for meta in instruction.accounts:
                if meta.is_signer and meta.pubkey not in signed:
                    return SubmitResult(None, TransportException(f"Missing signature for {meta.pubkey}"))
        state = self._state.copy()
        logs: List[str] = []
        try:
            for instruction in instructions:
                self._process(state, instruction, logs)
        except ProgramException as e:
            LOGGER.debug("Rejected transaction: %s", e)
            return SubmitResult(None, e)
        self._state = state
        self._num_transactions += 1
        return SubmitResult(f"fake-signature-{self._num_transactions}")

    def _process(self, state: _LedgerState, instruction: Instruction, logs: List[str]) -> None:
        if instruction.program_id != self.program_id:
            raise ProgramException(f"Unknown program {instruction.program_id}", logs=logs)
        try:
            operation, args = decode_operation(bytes(instruction.data))
        except DecodeException as e:
            raise ProgramException(f"Invalid instruction data: {e}", logs=logs) from e
        roles = OPERATION_LAYOUTS[operation].accounts
        if len(instruction.accounts) < len(roles):
            raise ProgramException("NotEnoughAccountKeys", logs=logs)
        accounts = {role.name: meta.pubkey for role, meta in zip(roles, instruction.accounts)}
        for role, meta in zip(roles, instruction.accounts):
            if role.signer and not meta.is_signer:
                raise _fail(ChallengeErrorCode.ACCOUNT_SHOULD_BE_SIGNER, logs)
        logs.append(f"IX: {operation.name.lower()}")
        handler = {
            Operation.CREATE_CHALLENGE: self._create_challenge,
            Operation.ADD_SOLUTIONS: self._add_solutions,
            Operation.START_CHALLENGE: self._start_challenge,
            Operation.ADMIT_CHALLENGER: self._admit_challenger,
            Operation.REDEEM: self._redeem,
        }[operation]
        handler(state, accounts, args, logs)

    def _load_challenge(self, state: _LedgerState, address: Pubkey, logs: List[str]) -> Challenge:
        if address not in state.accounts:
            raise _fail(ChallengeErrorCode.ACCOUNT_HAS_NO_DATA, logs)
        return Challenge.from_bytes(state.accounts[address])

    def _check_pda(self, expected: Pubkey, provided: Pubkey, logs: List[str]) -> None:
        if expected != provided:
            raise ProgramException(f"Provided PDA {provided} does not match {expected}", logs=logs)

    def _create_challenge(
        self, state: _LedgerState, accounts: Dict[str, Pubkey], args: Dict[str, Any], logs: List[str]
    ) -> None:
        challenge_pda = accounts["challenge_pda"]
        self._check_pda(pda_for_challenge(accounts["creator"], args["id"], self.program_id), challenge_pda, logs)
        if challenge_pda in state.accounts:
            raise _fail(ChallengeErrorCode.ACCOUNT_ALREADY_EXISTS, logs)
        if len(args["solutions"]) > MAX_SUPPORTED_SOLUTIONS:
            raise _fail(ChallengeErrorCode.EXCEEDING_MAX_SUPPORTED_SOLUTIONS, logs)
        challenge = Challenge.from_args(
            accounts["creator"],
            args["id"],
            args["admit_cost"],
            args["tries_per_admit"],
            solutions=args["solutions"],
            redeem=args["redeem"],
            program_id=self.program_id,
        )
        self._check_pda(challenge.redeem_pda(self.program_id), accounts["redeem_pda"], logs)
        state.accounts[challenge_pda] = challenge.to_bytes()
        state.mints.add(accounts["redeem_pda"])

    def _add_solutions(
        self, state: _LedgerState, accounts: Dict[str, Pubkey], args: Dict[str, Any], logs: List[str]
    ) -> None:
        challenge_pda = accounts["challenge_pda"]
        self._check_pda(pda_for_challenge(accounts["creator"], args["id"], self.program_id), challenge_pda, logs)
        if len(args["solutions"]) == 0:
            raise _fail(ChallengeErrorCode.NO_SOLUTIONS_TO_ADD_PROVIDED, logs)
        challenge = self._load_challenge(state, challenge_pda, logs)
        if len(challenge.solutions) + len(args["solutions"]) > MAX_SUPPORTED_SOLUTIONS:
            raise _fail(ChallengeErrorCode.EXCEEDING_MAX_SUPPORTED_SOLUTIONS, logs)
        state.accounts[challenge_pda] = challenge.with_solutions(args["solutions"]).to_bytes()

    def _start_challenge(
        self, state: _LedgerState, accounts: Dict[str, Pubkey], args: Dict[str, Any], logs: List[str]
    ) -> None:
        challenge_pda = accounts["challenge_pda"]
        self._check_pda(pda_for_challenge(accounts["creator"], args["id"], self.program_id), challenge_pda, logs)
        challenge = self._load_challenge(state, challenge_pda, logs)
        if challenge.started:
            raise _fail(ChallengeErrorCode.CHALLENGE_ALREADY_STARTED, logs)
        if len(challenge.solutions) == 0:
            raise _fail(ChallengeErrorCode.CHALLENGE_HAS_NO_SOLUTIONS, logs)
        state.accounts[challenge_pda] = replace(challenge, started=True).to_bytes()

    def _admit_challenger(
        self, state: _LedgerState, accounts: Dict[str, Pubkey], args: Dict[str, Any], logs: List[str]
    ) -> None:
        challenge_pda = accounts["challenge_pda"]
        self._check_pda(args["challenge_pda"], challenge_pda, logs)
        challenger_pda = accounts["challenger_pda"]
        if challenger_pda in state.accounts:
            raise _fail(ChallengeErrorCode.ACCOUNT_ALREADY_EXISTS, logs)
        challenge = self._load_challenge(state, challenge_pda, logs)
        if not challenge.started:
            raise _fail(ChallengeErrorCode.CHALLENGE_NOT_YET_STARTED, logs)
        if challenge.finished:
            raise _fail(ChallengeErrorCode.CHALLENGE_ALREADY_FINISHED, logs)
        self._check_pda(
            pda_for_challenger(challenge_pda, accounts["challenger"], self.program_id), challenger_pda, logs
        )
        payer = accounts["payer"]
        if state.lamports.get(payer, 0) < challenge.admit_cost:
            raise _fail(ChallengeErrorCode.INSUFFICIENT_FUNDS, logs)
        challenger = Challenger.from_args(accounts["challenger"], challenge_pda, challenge.tries_per_admit)
        state.accounts[challenger_pda] = challenger.to_bytes()
        state.lamports[payer] -= challenge.admit_cost
        creator = accounts["creator"]
        state.lamports[creator] = state.lamports.get(creator, 0) + challenge.admit_cost

    def _redeem(
        self, state: _LedgerState, accounts: Dict[str, Pubkey], args: Dict[str, Any], logs: List[str]
    ) -> None:
        challenger_pda = accounts["challenger_pda"]
        if challenger_pda not in state.accounts:
            raise _fail(ChallengeErrorCode.ACCOUNT_HAS_NO_DATA, logs)
        challenger = Challenger.from_bytes(state.accounts[challenger_pda])
        challenge_pda = accounts["challenge_pda"]
        self._check_pda(challenger.challenge_pda, challenge_pda, logs)
        challenge = self._load_challenge(state, challenge_pda, logs)
        if not challenge.started:
            raise _fail(ChallengeErrorCode.CHALLENGE_NOT_YET_STARTED, logs)
        if challenge.finished:
            raise _fail(ChallengeErrorCode.CHALLENGE_ALREADY_FINISHED, logs)
        self._check_pda(challenge.redeem, accounts["redeem"], logs)
        if challenger.tries_remaining == 0:
            raise _fail(ChallengeErrorCode.CHALLENGER_HAS_NO_TRIES_REMAINING, logs)
        if challenge.current_solution() is None:
            raise _fail(ChallengeErrorCode.OUT_OF_SOLUTIONS, logs)

        redeemed = challenger.redeemed
        if challenge.is_solution_correct(args["solution"]):
            ata = Redeem(challenge_pda=challenge_pda, pda=challenge.redeem).ata(accounts["challenger"])
            if ata != accounts["redeem_ata"]:
                raise _fail(ChallengeErrorCode.PROVIDED_ATA_IS_INCORRECT, logs)
            solving = challenge.solving + 1
            challenge = replace(challenge, solving=solving, finished=solving >= len(challenge.solutions))
            state.accounts[challenge_pda] = challenge.to_bytes()
            state.token_balances[ata] = state.token_balances.get(ata, 0) + 1
            redeemed = True
        else:
            logs.append("Provided solution was incorrect")

        # every attempt costs a try, correct or not
        state.accounts[challenger_pda] = Challenger(
            authority=challenger.authority,
            challenge_pda=challenger.challenge_pda,
            tries_remaining=challenger.tries_remaining - 1,
            redeemed=redeemed,
        ).to_bytes()

    async def fetch_account(self, address: Pubkey) -> bytes:
        if address not in self._state.accounts:
            raise AccountNotFoundException(address)
        return self._state.accounts[address]

    async def scan_accounts(self, program_id: Pubkey, filters: AccountFilters) -> List[Tuple[Pubkey, bytes]]:
        if self.fail_challenger_scans and filters.data_size == CHALLENGER_SIZE:
            raise TransportException("challenger scan failed")
        if program_id != self.program_id:
            return []
        return [(address, data) for address, data in self._state.accounts.items() if matches_filters(data, filters)]

    async def get_balance(self, address: Pubkey) -> int:
        return self._state.lamports.get(address, 0)

    async def get_token_balance(self, token_account: Pubkey) -> int:
        return self._state.token_balances.get(token_account, 0)

    def has_mint(self, address: Pubkey) -> bool:
        return address in self._state.mints


def make_keypair(airdrop_to: Optional[FakeLedger] = None) -> Keypair:
    keypair = Keypair()
    if airdrop_to is not None:
        airdrop_to.airdrop(keypair.pubkey())
    return keypair
