import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from . import config
from .models import SubmissionRecord
from .utils import get_redis_client, logger

__all__ = (
    'SubmissionStore',
    'MemorySubmissionStore',
    'RedisSubmissionStore',
    'build_store',
)


class SubmissionStore(ABC):
    """
    Persistence boundary for judged submissions.

    Records are keyed by token (the remote judge token, or the submission
    id when there is no remote token). Both writes are idempotent upserts.
    """

    @abstractmethod
    def create(self, record: SubmissionRecord) -> None:
        ...

    @abstractmethod
    def update_by_token(self, token: str, fields: dict) -> None:
        ...

    @abstractmethod
    def get_by_token(self, token: str) -> Optional[SubmissionRecord]:
        ...

    @staticmethod
    def _key(record: SubmissionRecord) -> str:
        return record.token or record.id


def _merge(record: SubmissionRecord, fields: dict) -> SubmissionRecord:
    data = record.model_dump()
    data.update(fields)
    data['updatedAt'] = datetime.now(timezone.utc)
    return SubmissionRecord.model_validate(data)


class MemorySubmissionStore(SubmissionStore):

    def __init__(self):
        self.records: Dict[str, SubmissionRecord] = {}
        self.lock = threading.Lock()

    def create(self, record):
        with self.lock:
            self.records[self._key(record)] = record

    def update_by_token(self, token, fields):
        with self.lock:
            record = self.records.get(token)
            if record is None:
                record = SubmissionRecord(id=token, token=token)
            self.records[token] = _merge(record, fields)

    def get_by_token(self, token):
        with self.lock:
            return self.records.get(token)


class RedisSubmissionStore(SubmissionStore):

    def __init__(self, client=None, ttl: int = config.SUBMISSION_TTL):
        self.client = client or get_redis_client()
        self.ttl = ttl

    @staticmethod
    def _redis_key(token: str) -> str:
        return f'submission-{token}'

    def create(self, record):
        key = self._redis_key(self._key(record))
        self.client.setex(key, self.ttl, record.model_dump_json())

    def update_by_token(self, token, fields):
        key = self._redis_key(token)
        with self.client.lock(f'{key}-lock', timeout=5):
            record = self.get_by_token(token)
            if record is None:
                record = SubmissionRecord(id=token, token=token)
            record = _merge(record, fields)
            self.client.setex(key, self.ttl, record.model_dump_json())

    def get_by_token(self, token):
        raw = self.client.get(self._redis_key(token))
        if raw is None:
            return None
        return SubmissionRecord.model_validate_json(raw)


def build_store(kind: str = config.SUBMISSION_STORE
                ) -> Optional[SubmissionStore]:
    if kind == 'redis':
        return RedisSubmissionStore()
    if kind == 'memory':
        return MemorySubmissionStore()
    if kind not in ('none', ''):
        logger().warning(f'unknown submission store: {kind!r}')
    return None
