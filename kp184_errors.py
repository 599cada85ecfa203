from enum import IntEnum


# -------------------------------------------------------------------------------------------------
# EXIT CODES
# Scripts driving kp184 key off these numbers, so they never change. Any non-zero code means the
# load is in an unknown state: re-synchronize (read status, set mode again) before continuing.
# -------------------------------------------------------------------------------------------------


class ExitCode(IntEnum):
    NO_ERROR = 0
    NEED_ARGUMENTS = 1
    INVALID_COMMAND = 2
    INVALID_ARGUMENT = 3
    PROFILE_OPEN = 4
    PROFILE_WRITE = 5
    PROFILE_READ = 6
    PROFILE_REMOVE = 7
    TRANSPORT = 8
    INVALID_RESPONSE = 9
    INVALID_CRC = 10


class KP184Error(RuntimeError):
    exit_code = ExitCode.TRANSPORT


# Usage errors: raised before any profile or device I/O.

class NeedArgumentsError(KP184Error):
    exit_code = ExitCode.NEED_ARGUMENTS


class InvalidCommandError(KP184Error):
    exit_code = ExitCode.INVALID_COMMAND


class InvalidArgumentError(KP184Error):
    exit_code = ExitCode.INVALID_ARGUMENT


# Profile store.

class ProfileOpenError(KP184Error):
    exit_code = ExitCode.PROFILE_OPEN


class ProfileWriteError(KP184Error):
    exit_code = ExitCode.PROFILE_WRITE


class ProfileReadError(KP184Error):
    exit_code = ExitCode.PROFILE_READ


class ProfileRemoveError(KP184Error):
    exit_code = ExitCode.PROFILE_REMOVE


# Serial line and protocol.

class TransportError(KP184Error):
    exit_code = ExitCode.TRANSPORT


class InvalidResponseError(KP184Error):
    exit_code = ExitCode.INVALID_RESPONSE


class InvalidCrcError(KP184Error):
    exit_code = ExitCode.INVALID_CRC
