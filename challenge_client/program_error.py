from enum import IntEnum
from typing import Dict, Final, Optional, Sequence

from challenge_client.exceptions import ProgramException


class ChallengeErrorCode(IntEnum):
    # security
    ACCOUNT_SHOULD_BE_SIGNER = 0x11C7AC
    PROVIDED_ATA_IS_INCORRECT = 0x11C7AD
    # create challenge
    ACCOUNT_NOT_FUNDED = 0x11C7AE
    # adding solutions
    EXCEEDING_MAX_SUPPORTED_SOLUTIONS = 0x11C7AF
    NO_SOLUTIONS_TO_ADD_PROVIDED = 0x11C7B0
    ACCOUNT_ALREADY_EXISTS = 0x11C7B1
    ACCOUNT_ALREADY_HAS_DATA = 0x11C7B2
    ACCOUNT_HAS_NO_DATA = 0x11C7B3
    # starting challenge
    CHALLENGE_ALREADY_STARTED = 0x11C7B4
    CHALLENGE_HAS_NO_SOLUTIONS = 0x11C7B5
    # admit
    CHALLENGE_NOT_YET_STARTED = 0x11C7B6
    CHALLENGE_ALREADY_FINISHED = 0x11C7B7
    # redeem
    SOLUTION_IS_INCORRECT = 0x11C7B8
    OUT_OF_SOLUTIONS = 0x11C7B9
    CHALLENGER_HAS_NO_TRIES_REMAINING = 0x11C7BA
    # misc
    INSUFFICIENT_FUNDS = 0x11C7BB


ERROR_MESSAGES: Final[Dict[ChallengeErrorCode, str]] = {
    ChallengeErrorCode.ACCOUNT_SHOULD_BE_SIGNER: "Account should be signer",
    ChallengeErrorCode.PROVIDED_ATA_IS_INCORRECT: "Provided ATA does not match the expected ATA",
    ChallengeErrorCode.ACCOUNT_NOT_FUNDED: "Account not funded",
    ChallengeErrorCode.EXCEEDING_MAX_SUPPORTED_SOLUTIONS: "Amount of solutions exceeds maximum supported solutions",
    ChallengeErrorCode.NO_SOLUTIONS_TO_ADD_PROVIDED: (
        "When adding solutions you need to provide at least one solution"
    ),
    ChallengeErrorCode.ACCOUNT_ALREADY_EXISTS: "Account was expected to not exists yet, but it does",
    ChallengeErrorCode.ACCOUNT_ALREADY_HAS_DATA: "Account has data but was expected to be empty",
    ChallengeErrorCode.ACCOUNT_HAS_NO_DATA: "Account has no data",
    ChallengeErrorCode.CHALLENGE_ALREADY_STARTED: "Challenge was started already and cannot be started again",
    ChallengeErrorCode.CHALLENGE_HAS_NO_SOLUTIONS: "Challenge has no solutions and thus cannot be started",
    ChallengeErrorCode.CHALLENGE_NOT_YET_STARTED: (
        "Challenge has not started yet and is not ready to admit challengers"
    ),
    ChallengeErrorCode.CHALLENGE_ALREADY_FINISHED: (
        "Challenge was finished already and is not admitting challengers nor allowing to redeem prices"
    ),
    ChallengeErrorCode.SOLUTION_IS_INCORRECT: "The provided solution did not match the currently expected solution",
    ChallengeErrorCode.OUT_OF_SOLUTIONS: "All solutions were already redeemed",
    ChallengeErrorCode.CHALLENGER_HAS_NO_TRIES_REMAINING: "This challenger used up all tries to solve the challenge",
    ChallengeErrorCode.INSUFFICIENT_FUNDS: "Payer does not have sufficient lamports to fund the operation",
}


def decode_program_error(code: int) -> Optional[ChallengeErrorCode]:
    try:
        return ChallengeErrorCode(code)
    except ValueError:
        return None


def program_exception_from_code(code: int, logs: Sequence[str] = tuple()) -> ProgramException:
    error_code = decode_program_error(code)
    if error_code is None:
        message = f"Program failed with custom error {code:#x}"
    else:
        message = f"{error_code.name}: {ERROR_MESSAGES[error_code]}"
    return ProgramException(message, code=code, error_code=error_code, logs=logs)
