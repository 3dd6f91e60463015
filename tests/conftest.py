# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from observability import logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.configure_logging()
