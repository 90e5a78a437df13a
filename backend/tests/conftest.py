import pytest

from tests.fakes import FakePersistence, FakeSettingsRepository, FakeStore


@pytest.fixture
def db() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings_repo() -> FakeSettingsRepository:
    return FakeSettingsRepository()
