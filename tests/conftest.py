import pytest

from fakes import MemoryStore, SleepRecorder


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def sleeps():
    return SleepRecorder()
