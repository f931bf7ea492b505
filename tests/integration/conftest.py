# tests/integration/conftest.py
import aiosqlite
import pytest
import pytest_asyncio

from exchange_keyvault.db.schema import create_all_tables
from exchange_keyvault.service import AccountService
from exchange_keyvault.store.metadata import MetadataStore
from exchange_keyvault.vault.disabled import DisabledKeyVault
from exchange_keyvault.vault.secure import SecureKeyVault


@pytest_asyncio.fixture
async def db():
    """Create an in-memory SQLite database with full schema."""
    conn = await aiosqlite.connect(":memory:")
    await create_all_tables(conn)
    yield conn
    await conn.close()


@pytest.fixture
def metadata_store(db):
    return MetadataStore(db)


@pytest.fixture
def secure_vault(memory_store):
    return SecureKeyVault(memory_store)


@pytest.fixture
def secure_service(metadata_store, secure_vault, id_factory, clock):
    """AccountService with a working vault and deterministic ids."""
    return AccountService(metadata_store, secure_vault, id_factory=id_factory, clock=clock)


@pytest.fixture
def disabled_service(metadata_store, id_factory, clock):
    """AccountService on a platform without secure storage."""
    return AccountService(metadata_store, DisabledKeyVault(), id_factory=id_factory, clock=clock)
