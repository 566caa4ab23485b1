from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from challenge_client.program_error import ChallengeErrorCode


class ChallengeClientException(Exception):
    pass


class InvalidArgumentException(ChallengeClientException, ValueError):
    pass


class DecodeException(ChallengeClientException):
    pass


class AccountNotFoundException(ChallengeClientException):
    def __init__(self, address: object) -> None:
        super().__init__(f"account({address}) not found")
        self.address = address


class TransportException(ChallengeClientException):
    pass


class ProgramException(ChallengeClientException):
    """
    The program rejected the submitted operations. `code` is the custom error code reported by the
    runtime (None for builtin instruction errors) and `error_code` its decoded form, when known
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        error_code: "Optional[ChallengeErrorCode]" = None,
        logs: Sequence[str] = tuple(),
    ) -> None:
        super().__init__(message)
        self.code = code
        self.error_code = error_code
        self.logs = logs
