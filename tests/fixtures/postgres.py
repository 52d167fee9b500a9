import datetime
import logging

import pytest
import simpledb
from tests import config
from tests.fixtures.containers import start_container

logger = logging.getLogger(__name__)


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    Testcontainers assigns a random available port and waits for the
    database to be ready. The tests using it are skipped when Docker is
    not available.
    """
    testcontainers_postgres = pytest.importorskip('testcontainers.postgres')
    container = start_container(
        testcontainers_postgres.PostgresContainer,
        image='postgres:16',
        username=config.postgresql['username'],
        password=config.postgresql['password'],
        dbname=config.postgresql['database'],
    )

    options = {
        **config.postgresql,
        'hostname': container.get_container_host_ip(),
        'port': int(container.get_exposed_port(5432)),
    }
    logger.info(f'PostgreSQL container started at {options["hostname"]}:{options["port"]}')

    def finalizer():
        container.stop()
        logger.info('PostgreSQL container stopped')

    request.addfinalizer(finalizer)
    return options


def stage_test_data(db):
    db.run('DROP TABLE IF EXISTS article')
    db.run(config.ARTICLE_POSTGRES)

    now = datetime.datetime.now().replace(microsecond=0)
    for i in range(1, 7):
        db.gen_sql() \
            .append('INSERT INTO article ("createdDate", "modifiedDate", title, body, "isBlind")') \
            .append('VALUES (?, ?, ?, ?, ?)', now, now, f'title{i}', f'body{i}', False) \
            .insert()


@pytest.fixture
def psql_db(psql_docker):
    """SimpleDb on the PostgreSQL container with staged articles.
    """
    db = simpledb.connect(psql_docker)
    stage_test_data(db)
    yield db
    db.close_all()
