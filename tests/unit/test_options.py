import pytest
import simpledb
from simpledb.options import DatabaseOptions


def test_mysql_defaults():
    options = DatabaseOptions(hostname='localhost', username='root', database='simpleDb__test')
    assert options.drivername == 'mysql'
    assert options.port == 3306
    assert options.charset == 'utf8mb4'
    assert options.ssl is False
    assert options.timezone is None
    assert options.dev_mode is False


def test_postgres_default_port():
    options = DatabaseOptions(drivername='postgresql', hostname='localhost',
                              username='postgres', database='test_db')
    assert options.port == 5432


def test_explicit_port_kept():
    options = DatabaseOptions(hostname='localhost', username='root', database='db', port=3307)
    assert options.port == 3307


def test_sqlite_needs_only_database():
    options = DatabaseOptions(drivername='sqlite', database='test.db')
    assert options.hostname is None
    assert options.port == 0


def test_unsupported_driver():
    with pytest.raises(ValueError, match='drivername must be one of'):
        DatabaseOptions(drivername='oracle', database='x')


@pytest.mark.parametrize('missing', ['hostname', 'username', 'database'])
def test_required_fields(missing):
    values = {'hostname': 'localhost', 'username': 'root', 'database': 'db'}
    values[missing] = None
    with pytest.raises(ValueError, match=missing):
        DatabaseOptions(**values)


def test_from_dict_ignores_unknown_keys():
    options = DatabaseOptions.from_dict({'drivername': 'sqlite', 'database': 'a.db', 'use_pool': True},
                                        database='b.db')
    assert options.database == 'b.db'


def test_from_env(monkeypatch):
    monkeypatch.setenv('SIMPLEDB_DRIVERNAME', 'postgresql')
    monkeypatch.setenv('SIMPLEDB_HOSTNAME', 'db.internal')
    monkeypatch.setenv('SIMPLEDB_USERNAME', 'app')
    monkeypatch.setenv('SIMPLEDB_DATABASE', 'app')
    monkeypatch.setenv('SIMPLEDB_PORT', '6543')
    monkeypatch.setenv('SIMPLEDB_SSL', 'true')
    monkeypatch.setenv('SIMPLEDB_DEV_MODE', '1')
    monkeypatch.setenv('SIMPLEDB_TIMEZONE', '')

    options = DatabaseOptions.from_env(password='secret')
    assert options.drivername == 'postgresql'
    assert options.hostname == 'db.internal'
    assert options.port == 6543
    assert options.ssl is True
    assert options.dev_mode is True
    assert options.timezone is None
    assert options.password == 'secret'


def test_connect_with_overrides():
    options = DatabaseOptions(drivername='sqlite', database='a.db')
    db = simpledb.connect(options, database='b.db', dev_mode=True)
    assert db.options.database == 'b.db'
    assert db.dev_mode is True
    assert options.database == 'a.db'


def test_connect_from_kwargs():
    db = simpledb.connect(drivername='sqlite', database='a.db')
    assert isinstance(db, simpledb.SimpleDb)
    assert len(db.contexts) == 0


if __name__ == '__main__':
    __import__('pytest').main([__file__])
