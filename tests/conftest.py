import pytest

from mykeys.crypto import ContentCipher, KeyCache
from mykeys.conversation import ConversationEngine
from mykeys.service import Vault
from mykeys.storage import MemoryStorage

SECRET = "unit-test-content-secret"


@pytest.fixture
def cipher():
    """Content cipher bound to the test secret."""
    return ContentCipher(SECRET, KeyCache())


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def vault(storage, cipher):
    return Vault(storage, cipher)


@pytest.fixture
def engine(vault):
    return ConversationEngine(vault)
