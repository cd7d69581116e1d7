"""Process exit codes.

Every CLI command exits with one of these codes. Per-node failures inside a
recursive operation are reported as warnings and do not change the exit code
unless the caller asks for strict mode.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for muno commands.

    These values are part of the CLI contract and must stay stable:
    - 0: Success (partial per-node failures included)
    - 1: User error (bad address, invalid arguments, name conflicts)
    - 2: Workspace error (no workspace found, tree never loaded)
    - 3: Git error (clone/pull/push failed on the operation's own target)
    - 4: Config error (unreadable or invalid tree config, reference cycle)
    - 5: I/O error (directory missing, write failed)
    """

    OK = 0
    USER_ERROR = 1
    WORKSPACE_ERROR = 2
    GIT_ERROR = 3
    CONFIG_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
