from __future__ import annotations

from typing import Callable, Mapping

import pytest

from tests._fixtures.tree_builder import Content, FakeTreeSource


@pytest.fixture
def tree_source() -> Callable[[Mapping[str, Content]], FakeTreeSource]:
    """Build an in-memory committed tree from ``path -> content`` pairs."""
    return FakeTreeSource
