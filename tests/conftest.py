import pytest

from tests.relay_fakes import _FakeBot, _FakeCompleter


@pytest.fixture
def fake_bot() -> _FakeBot:
    return _FakeBot()


@pytest.fixture
def fake_completer() -> _FakeCompleter:
    return _FakeCompleter()
