from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """The CLI binds structlog to the runner's stderr; undo that between tests."""
    yield
    structlog.reset_defaults()
