from abc import ABC, abstractmethod
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from challenge_client.exceptions import ProgramException, TransportException
from challenge_client.ixs import OperationDescriptor
from challenge_client.state.codec import AccountFilters

Operations = Sequence[Union[OperationDescriptor, Instruction]]


class SubmitResult(NamedTuple):
    signature: Optional[str]
    error: Optional[Union[ProgramException, TransportException]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def assert_success(self) -> str:
        if self.error is not None:
            raise self.error
        assert self.signature is not None
        return self.signature


def to_instructions(operations: Operations) -> List[Instruction]:
    return [
        operation.to_instruction() if isinstance(operation, OperationDescriptor) else operation
        for operation in operations
    ]


class VendorBaseTransport(ABC):
    """
    The boundary to the ledger. Implementations submit signed batches atomically and read raw account
    bytes; nothing here retries, since operations like Redeem are not idempotent
    """

    @abstractmethod
    async def submit(self, operations: Operations, signers: Sequence[Keypair]) -> SubmitResult:
        # never raises for program or transport failures; they are reported in the result
        raise NotImplementedError()

    @abstractmethod
    async def fetch_account(self, address: Pubkey) -> bytes:
        # raises AccountNotFoundException when the address has no backing account
        raise NotImplementedError()

    @abstractmethod
    async def scan_accounts(self, program_id: Pubkey, filters: AccountFilters) -> List[Tuple[Pubkey, bytes]]:
        raise NotImplementedError()

    @abstractmethod
    async def get_balance(self, address: Pubkey) -> int:
        raise NotImplementedError()

    @abstractmethod
    async def get_token_balance(self, token_account: Pubkey) -> int:
        # 0 when the token account does not exist yet
        raise NotImplementedError()

    async def close(self) -> None:
        pass
