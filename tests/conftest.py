import pytest

from dgrants_clr.db import Database


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'cache.db'}")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def cache(database):
    with database.cache() as cache:
        yield cache


@pytest.fixture
def session(cache):
    return cache.session
