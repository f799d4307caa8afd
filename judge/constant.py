from enum import Enum, IntEnum


class JudgeStatus(IntEnum):
    """Status ids reported by the remote judge service."""
    IN_QUEUE = 1
    PROCESSING = 2
    ACCEPTED = 3
    WRONG_ANSWER = 4
    TIME_LIMIT_EXCEEDED = 5
    COMPILATION_ERROR = 6
    RUNTIME_ERROR_SIGSEGV = 7
    RUNTIME_ERROR_SIGXFSZ = 8
    RUNTIME_ERROR_SIGFPE = 9
    RUNTIME_ERROR_SIGABRT = 10
    RUNTIME_ERROR_NZEC = 11
    RUNTIME_ERROR_OTHER = 12
    INTERNAL_ERROR = 13
    EXEC_FORMAT_ERROR = 14

    @classmethod
    def is_terminal(cls, status_id: int) -> bool:
        return status_id >= cls.ACCEPTED


class Backend(str, Enum):
    AUTO = 'auto'
    CONTAINER = 'container'
    REMOTE = 'remote'
    LOCAL = 'local'


class RuntimeFault(str, Enum):
    SEGMENTATION_FAULT = 'segmentation fault'
    ABORTED = 'aborted'
    FLOATING_POINT = 'floating point exception'
    OUTPUT_LIMIT = 'output size limit exceeded'
    MEMORY_LIMIT = 'memory limit exceeded'
    NON_ZERO_EXIT = 'non-zero exit status'
    OTHER = 'abnormal termination'


SETUP_CASE_ID = 'setup'
COMPILE_CASE_ID = 'compile'
SUBMISSION_MESSAGE = 'Submission processed'
# exit code of coreutils `timeout` when the wrapped command ran out of time
TIMEOUT_EXIT_CODE = 124
# 128 + SIGKILL
KILLED_EXIT_CODE = 137
SOURCE_FILENAME = 'solution.c'
BINARY_FILENAME = 'solution'
