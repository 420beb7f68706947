import pytest

from intake.live.engine import IntakeEngine
from intake.live.session_store import InMemorySessionStore
from intake.location import zip_lookup
from intake.registry import init_db
from intake.state.schema_registry import get_catalog
from tests.fakes import FakeChat, FakeLookup, FakeMarketplace


@pytest.fixture(autouse=True)
def _clear_zip_cache():
    zip_lookup.clear_cache()
    yield
    zip_lookup.clear_cache()


@pytest.fixture
def catalog():
    return get_catalog()


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "intake.db"
    init_db(path)
    return path


@pytest.fixture
def make_engine(catalog, db_path):
    def _make(chat=None, *, lookup=None, post=None, store=None, max_misses=2):
        return IntakeEngine(
            store or InMemorySessionStore(),
            catalog=catalog,
            chat=chat or FakeChat(),
            lookup=lookup or FakeLookup(),
            post=post or FakeMarketplace(),
            max_misses=max_misses,
            db_path=db_path,
        )

    return _make
