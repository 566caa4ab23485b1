import logging
from typing import List, Optional, Sequence, Tuple, Union

import base58
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import MemcmpOpts, TxOpts
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import (
    InstructionErrorCustom,
    TransactionErrorInstructionError,
)

from challenge_client.config import RpcConfig
from challenge_client.exceptions import (
    AccountNotFoundException,
    ProgramException,
    TransportException,
)
from challenge_client.program_error import program_exception_from_code
from challenge_client.state.codec import AccountFilters
from challenge_client.utils.transport.base import (
    Operations,
    SubmitResult,
    VendorBaseTransport,
    to_instructions,
)

LOGGER = logging.getLogger(__name__)


def _program_exception(error: object, logs: Sequence[str]) -> Optional[ProgramException]:
    if isinstance(error, TransactionErrorInstructionError):
        inner = error.err
        if isinstance(inner, InstructionErrorCustom):
            return program_exception_from_code(inner.code, logs)
        return ProgramException(f"Instruction {error.index} failed: {inner}", logs=logs)
    return None


def _submit_error(error: object, logs: Sequence[str]) -> Union[ProgramException, TransportException]:
    program_exception = _program_exception(error, logs)
    if program_exception is not None:
        return program_exception
    return TransportException(f"Transaction failed: {error}")


class RpcTransport(VendorBaseTransport):
    def __init__(self, config: RpcConfig) -> None:
        self._commitment = Commitment(config.commitment)
        self._client = AsyncClient(config.rpc_url, commitment=self._commitment, timeout=config.timeout_seconds)

    @property
    def client(self) -> AsyncClient:
        return self._client

    async def _build_transaction(self, operations: Operations, signers: Sequence[Keypair]) -> Transaction:
        blockhash = (await self._client.get_latest_blockhash(self._commitment)).value.blockhash
        # the first signer pays the fees
        message = Message.new_with_blockhash(to_instructions(operations), signers[0].pubkey(), blockhash)
        return Transaction(list(signers), message, blockhash)

    async def submit(self, operations: Operations, signers: Sequence[Keypair]) -> SubmitResult:
        if len(signers) == 0:
            return SubmitResult(None, TransportException("At least one signer, the fee payer, is required"))
        try:
            transaction = await self._build_transaction(operations, signers)
        except SolanaRpcException as e:
            return SubmitResult(None, TransportException(f"Failed to fetch the latest blockhash: {e}"))
        except Exception as e:  # pylint: disable=broad-except
            # solders raises when the signers don't cover the required signatures
            return SubmitResult(None, TransportException(f"Failed to sign transaction: {e}"))
        LOGGER.info("Submitting %d operations signed by %d signers", len(operations), len(signers))
        try:
            resp = await self._client.send_raw_transaction(
                bytes(transaction),
                opts=TxOpts(skip_confirmation=True, preflight_commitment=self._commitment),
            )
        except RPCException as e:
            data = getattr(e.args[0], "data", None) if len(e.args) > 0 else None
            logs = getattr(data, "logs", None) or []
            error = _submit_error(getattr(data, "err", None) or e, logs)
            LOGGER.info("Submission rejected: %s", error)
            return SubmitResult(None, error)
        except SolanaRpcException as e:
            return SubmitResult(None, TransportException(f"Failed to send transaction: {e}"))
        signature: Signature = resp.value
        return await self._confirm(signature)

    async def _confirm(self, signature: Signature) -> SubmitResult:
        try:
            resp = await self._client.confirm_transaction(signature, self._commitment)
        except (SolanaRpcException, UnconfirmedTxError) as e:
            return SubmitResult(str(signature), TransportException(f"Failed to confirm {signature}: {e}"))
        status = resp.value[0]
        if status is not None and status.err is not None:
            return SubmitResult(str(signature), _submit_error(status.err, []))
        LOGGER.info("Confirmed transaction %s", signature)
        return SubmitResult(str(signature))

    async def fetch_account(self, address: Pubkey) -> bytes:
        try:
            resp = await self._client.get_account_info(address, encoding="base64")
        except SolanaRpcException as e:
            raise TransportException(f"Failed to fetch account {address}") from e
        if resp.value is None:
            raise AccountNotFoundException(address)
        return bytes(resp.value.data)

    async def scan_accounts(self, program_id: Pubkey, filters: AccountFilters) -> List[Tuple[Pubkey, bytes]]:
        rpc_filters: List[Union[int, MemcmpOpts]] = [
            MemcmpOpts(offset=memcmp.offset, bytes=base58.b58encode(memcmp.data).decode("ascii"))
            for memcmp in filters.memcmp
        ]
        if filters.data_size is not None:
            rpc_filters.append(filters.data_size)
        try:
            resp = await self._client.get_program_accounts(program_id, encoding="base64", filters=rpc_filters)
        except SolanaRpcException as e:
            raise TransportException(f"Failed to scan accounts of {program_id}") from e
        return [(keyed.pubkey, bytes(keyed.account.data)) for keyed in resp.value]

    async def get_balance(self, address: Pubkey) -> int:
        try:
            return int((await self._client.get_balance(address)).value)
        except SolanaRpcException as e:
            raise TransportException(f"Failed to fetch balance of {address}") from e

    async def get_token_balance(self, token_account: Pubkey) -> int:
        try:
            account = await self._client.get_account_info(token_account)
            if account.value is None:
                return 0
            return int((await self._client.get_token_account_balance(token_account)).value.amount)
        except (SolanaRpcException, RPCException) as e:
            raise TransportException(f"Failed to fetch token balance of {token_account}") from e

    async def close(self) -> None:
        await self._client.close()
