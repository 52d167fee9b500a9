"""
Docker container helpers shared by the backend fixtures.
"""
import logging

import pytest

logger = logging.getLogger(__name__)


def start_container(container_cls, **kw):
    """Create and start a testcontainers container, or skip the test.

    Building the container already talks to the Docker daemon, so both
    construction and start are guarded.
    """
    try:
        container = container_cls(**kw)
        container.start()
    except Exception as e:
        pytest.skip(f'Docker is not available: {e}')
    logger.info(f'{container_cls.__name__} started')
    return container
