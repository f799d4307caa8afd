from datetime import datetime, timezone
from typing import List, Optional
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class TestCase(BaseModel):
    __test__ = False
    model_config = ConfigDict(frozen=True)

    id: str
    input: str = ''
    expectedOutput: str = ''
    hidden: bool = False


class Challenge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ''
    difficulty: str = ''
    description: str = ''
    hints: List[str] = Field(default_factory=list)
    testCases: List[TestCase] = Field(default_factory=list)
    initialCode: str = ''
    solutions: List[str] = Field(default_factory=list)
    # seconds, 0 means "use the default"
    timeLimit: int = 0
    # MB, 0 means "use the default"
    memoryLimit: int = 0

    @field_validator('testCases')
    @classmethod
    def _unique_case_ids(cls, v):
        seen = set()
        for case in v:
            if case.id in seen:
                raise ValueError(f'duplicated test case id: {case.id}')
            seen.add(case.id)
        return v

    def test_case(self, case_id: str) -> Optional[TestCase]:
        return next((c for c in self.testCases if c.id == case_id), None)


class TestResult(BaseModel):
    __test__ = False
    testCaseId: str
    passed: bool = False
    output: str = ''
    error: str = ''
    # seconds
    executionTime: float = 0.0
    # KB
    memory: int = 0


class SubmissionResponse(BaseModel):
    success: bool
    message: str
    testResults: List[TestResult] = Field(default_factory=list)


def _now():
    return datetime.now(timezone.utc)


class SubmissionRecord(BaseModel):
    """Persisted view of one judged submission (or one remote judge token)."""
    id: str
    token: str = ''
    challengeId: str = ''
    userId: str = ''
    language: str = 'C'
    code: str = ''
    stdout: str = ''
    stderr: str = ''
    compileOutput: str = ''
    message: str = ''
    statusCode: int = 0
    statusDesc: str = ''
    memory: int = 0
    time: float = 0.0
    createdAt: datetime = Field(default_factory=_now)
    updatedAt: datetime = Field(default_factory=_now)
