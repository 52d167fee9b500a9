"""Tests for the container start helper used by the backend fixtures."""
import pytest
from tests.fixtures.containers import start_container


class UnreachableDaemon:

    def __init__(self, **kw):
        raise FileNotFoundError(2, 'No such file or directory')


class FailingStart:

    def __init__(self, **kw):
        self.kw = kw

    def start(self):
        raise RuntimeError('image pull failed')


class Running:

    def __init__(self, **kw):
        self.kw = kw
        self.started = False

    def start(self):
        self.started = True


def test_skips_when_daemon_unreachable():
    with pytest.raises(pytest.skip.Exception):
        start_container(UnreachableDaemon, image='postgres:16')


def test_skips_when_start_fails():
    with pytest.raises(pytest.skip.Exception):
        start_container(FailingStart, image='mysql:8.0')


def test_returns_started_container():
    container = start_container(Running, image='mysql:8.0', dbname='test_db')
    assert container.started
    assert container.kw == {'image': 'mysql:8.0', 'dbname': 'test_db'}


if __name__ == '__main__':
    __import__('pytest').main([__file__])
