__all__ = (
    'JudgeError',
    'ChallengeNotFoundError',
    'SandboxError',
    'MalformedStreamError',
    'CompilationError',
    'ServiceTimeoutError',
    'RemoteJudgeError',
)


class JudgeError(Exception):
    pass


class ChallengeNotFoundError(JudgeError):

    def __init__(self, challenge_id: str):
        super().__init__(f'challenge not found: {challenge_id}')
        self.challenge_id = challenge_id


class SandboxError(JudgeError):
    """Infrastructure failure while preparing or driving a sandbox.

    The message is shown to the submitter, so it must not carry host
    details; the underlying exception is chained for the log.
    """


class MalformedStreamError(SandboxError):
    pass


class CompilationError(JudgeError):

    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


class ServiceTimeoutError(JudgeError):
    pass


class RemoteJudgeError(JudgeError):
    pass
