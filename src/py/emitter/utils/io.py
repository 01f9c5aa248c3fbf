DEFAULT_ENCODING: str = "utf8"
# Header lines are ISO-8859-1 on the wire, bodies use the default encoding.
HEADER_ENCODING: str = "latin-1"
EOL: bytes = b"\r\n"


def asBytes(value: str | bytes | bytearray | memoryview | None) -> bytes:
	if isinstance(value, bytes):
		return value
	elif isinstance(value, (bytearray, memoryview)):
		return bytes(value)
	elif isinstance(value, str):
		return value.encode(DEFAULT_ENCODING)
	elif value is None:
		return b""
	else:
		raise ValueError(f"Expected bytes or str, got: {value!r}")


def asHeaderBytes(line: str) -> bytes:
	"""Encodes a status or header line for the wire."""
	return line.encode(HEADER_ENCODING)


# EOF
