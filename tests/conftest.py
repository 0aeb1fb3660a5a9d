"""Shared fixtures for pypublish tests."""

import tempfile
from pathlib import Path
from typing import Optional

import pytest

from pypublish.cache import RemoteStateCache
from pypublish.exceptions import RemoteWriteError
from pypublish.models import RemoteObjectMeta
from pypublish.utils import calculate_fingerprint


class FakeStore:
    """In-memory RemoteStore recording every call."""

    def __init__(self, objects: Optional[dict[str, bytes]] = None):
        self.objects: dict[str, bytes] = dict(objects or {})
        self.headers: dict[str, dict[str, str]] = {}
        self.calls: list[tuple[str, object]] = []
        self.fail_delete_on_call: Optional[int] = None
        self._delete_calls = 0

    def head_object(self, key: str) -> Optional[RemoteObjectMeta]:
        self.calls.append(("head_object", key))
        if key not in self.objects:
            return None
        return RemoteObjectMeta(
            key=key,
            fingerprint=calculate_fingerprint(self.objects[key]),
        )

    def put_object(self, key: str, data: bytes, headers: dict[str, str]) -> None:
        self.calls.append(("put_object", key))
        self.objects[key] = data
        self.headers[key] = dict(headers)

    def list_objects(self, prefix: str = ""):
        self.calls.append(("list_objects", prefix))
        for key in list(self.objects):
            if key.startswith(prefix):
                yield key

    def delete_objects(self, keys: list[str]) -> None:
        self.calls.append(("delete_objects", list(keys)))
        self._delete_calls += 1
        if self.fail_delete_on_call == self._delete_calls:
            raise RemoteWriteError("Simulated delete failure")
        for key in keys:
            self.objects.pop(key, None)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """Create an empty in-memory store."""
    return FakeStore()


@pytest.fixture
def cache(temp_dir):
    """Create an empty cache without periodic flushing."""
    return RemoteStateCache(temp_dir / ".pypublish-test", flush_interval=0)


@pytest.fixture
def make_store():
    """Return a factory creating a store that already holds some keys."""

    def factory(*keys: str) -> FakeStore:
        return FakeStore({key: b"x" for key in keys})

    return factory
