import pytest

from datalake_sdk.test_utils.fake_operations import FakePathOperations


@pytest.fixture
def operations() -> FakePathOperations:
    return FakePathOperations()
