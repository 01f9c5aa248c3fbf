from io import StringIO
from typing import Iterator

import pytest

from emitter.utils.logging import setErrorStream


@pytest.fixture
def log() -> Iterator[StringIO]:
	"""Captures the log output."""
	stream = StringIO()
	previous = setErrorStream(stream)
	try:
		yield stream
	finally:
		setErrorStream(previous)


# EOF
