from __future__ import annotations

import logging
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def reset_buildkeeper_logging() -> Generator[None, None, None]:
    """Undo setup_logging() done by CLI invocations so caplog keeps working."""
    yield

    root_logger = logging.getLogger("buildkeeper")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True
