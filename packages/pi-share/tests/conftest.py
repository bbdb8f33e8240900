import pytest
from pi.share.storage.database import Database


@pytest.fixture
async def db():
    """Connected in-memory preferences database."""
    database = Database(":memory:")
    await database.connect()
    yield database
    await database.close()
