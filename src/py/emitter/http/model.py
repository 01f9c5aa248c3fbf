import inspect
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import (
	IO,
	Any,
	Iterable,
	Iterator,
	Mapping,
	NamedTuple,
	TypeAlias,
	Union,
)

from ..config import CHUNK_SIZE
from ..utils.io import asBytes
from .status import HTTP_STATUS

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------

RE_VERSION = re.compile(r"^\d(\.\d)?$")


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`, which is used as the
	case-insensitive identity of a header."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in key.split("-"))
		headers[key] = normalized
		return normalized


THeaderValue: TypeAlias = str | int | Iterable[str | int]
THeadersInput: TypeAlias = Union[
	Mapping[str, THeaderValue], Iterable[tuple[str, THeaderValue]]
]


def headervalue(value: str | int) -> str:
	"""Normalizes a single header value to a string."""
	if isinstance(value, str):
		return value
	elif isinstance(value, int) and not isinstance(value, bool):
		return str(value)
	else:
		raise ValueError(f"Header values must be strings or integers, got: {value!r}")


def headervalues(value: THeaderValue) -> tuple[str, ...]:
	"""Normalizes a header value (or a flat list of values) to a tuple of
	strings."""
	if isinstance(value, (str, int)):
		return (headervalue(value),)
	elif isinstance(value, (bytes, bytearray, Mapping)) or not isinstance(
		value, Iterable
	):
		raise ValueError(f"Unsupported header value: {value!r}")
	else:
		return tuple(headervalue(_) for _ in value)


# -----------------------------------------------------------------------------
#
# HEADERS
#
# -----------------------------------------------------------------------------


class HTTPHeaders:
	"""An ordered collection of multi-valued headers. Names are matched
	case-insensitively, but the casing they were first stored with is kept
	for output. Instances are not modified once created: the `with*` methods
	return updated copies."""

	__slots__ = ["_names", "_values"]

	@staticmethod
	def Create(
		headers: Union["HTTPHeaders", THeadersInput, None] = None,
	) -> "HTTPHeaders":
		if isinstance(headers, HTTPHeaders):
			return headers
		res = HTTPHeaders()
		if headers is None:
			return res
		pairs: Iterable[tuple[str, THeaderValue]] = (
			headers.items() if isinstance(headers, Mapping) else headers
		)
		for name, value in pairs:
			res._add(name, headervalues(value))
		return res

	def __init__(self) -> None:
		# Both dicts are keyed by `headername(name)`, and preserve insertion
		# order.
		self._names: dict[str, str] = {}
		self._values: dict[str, tuple[str, ...]] = {}

	def _add(self, name: str, values: tuple[str, ...]) -> "HTTPHeaders":
		if not isinstance(name, str) or not name:
			raise ValueError(f"Header name must be a non-empty string, got: {name!r}")
		key = headername(name)
		if key in self._names:
			self._values[key] += values
		else:
			self._names[key] = name
			self._values[key] = values
		return self

	def _copy(self) -> "HTTPHeaders":
		res = HTTPHeaders()
		res._names = dict(self._names)
		res._values = dict(self._values)
		return res

	# =========================================================================
	# ACCESSORS
	# =========================================================================

	def has(self, name: str) -> bool:
		return headername(name) in self._names

	def name(self, name: str) -> str | None:
		"""Returns the stored casing of the given header name."""
		return self._names.get(headername(name))

	def values(self, name: str) -> tuple[str, ...]:
		return self._values.get(headername(name), ())

	def line(self, name: str) -> str:
		"""Returns the header values joined as a comma-separated header line,
		or an empty string when the header is absent."""
		return ", ".join(self.values(name))

	def items(self) -> Iterator[tuple[str, tuple[str, ...]]]:
		"""Iterates on `(name, values)` in insertion order, with names in
		their stored casing."""
		for key, name in self._names.items():
			yield name, self._values[key]

	def __contains__(self, name: object) -> bool:
		return isinstance(name, str) and self.has(name)

	def __iter__(self) -> Iterator[str]:
		return iter(self._names.values())

	def __len__(self) -> int:
		return len(self._names)

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, HTTPHeaders):
			return NotImplemented
		return list(self.items()) == list(other.items())

	def __hash__(self) -> int:
		return hash(tuple(self.items()))

	# =========================================================================
	# DERIVATIONS
	# =========================================================================

	def withHeader(self, name: str, value: THeaderValue) -> "HTTPHeaders":
		"""Returns a copy where the values of the given header are replaced."""
		res = self._copy()
		key = headername(name)
		if key in res._names:
			res._values[key] = headervalues(value)
			return res
		else:
			return res._add(name, headervalues(value))

	def withAddedHeader(self, name: str, value: THeaderValue) -> "HTTPHeaders":
		"""Returns a copy where the given values are appended to the header."""
		return self._copy()._add(name, headervalues(value))

	def withoutHeader(self, name: str) -> "HTTPHeaders":
		key = headername(name)
		if key not in self._names:
			return self
		res = self._copy()
		del res._names[key]
		del res._values[key]
		return res

	def __str__(self) -> str:
		return f"Headers({', '.join(f'{k}={list(v)}' for k, v in self.items())})"

	__repr__ = __str__


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents the whole body as bytes."""

	payload: bytes = b""

	@staticmethod
	def FromBytes(data: bytes | str) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=asBytes(data))

	@property
	def length(self) -> int:
		return len(self.payload)

	def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
		if self.payload:
			yield self.payload

	def render(self) -> bytes:
		return self.payload


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body read from a file."""

	path: Path

	@property
	def length(self) -> int:
		return self.path.stat().st_size

	def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
		with open(self.path, "rb") as f:
			while chunk := f.read(size):
				yield chunk

	def render(self) -> bytes:
		return self.path.read_bytes()


class HTTPBodyStream(NamedTuple):
	"""An HTTP body that is generated from a finite iterable of `str` or
	`bytes` chunks. Generators can only be rendered once."""

	stream: Iterable[str | bytes]

	def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
		for _ in self.stream:
			chunk = asBytes(_)
			if chunk:
				yield chunk

	def render(self) -> bytes:
		return b"".join(self.chunks())


class HTTPBodyIO(NamedTuple):
	"""An HTTP body read from a file-like object, which is rewound first
	when it supports seeking."""

	io: IO[Any]

	def chunks(self, size: int = CHUNK_SIZE) -> Iterator[bytes]:
		seekable = getattr(self.io, "seekable", None)
		if seekable and seekable():
			self.io.seek(0)
		while chunk := self.io.read(size):
			yield asBytes(chunk)

	def render(self) -> bytes:
		return b"".join(self.chunks())


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile | HTTPBodyStream | HTTPBodyIO


def asBody(content: Any) -> THTTPBody | None:
	"""Wraps the given content in the matching body type."""
	if content is None:
		return None
	elif isinstance(
		content, (HTTPBodyBlob, HTTPBodyFile, HTTPBodyStream, HTTPBodyIO)
	):
		return content
	elif isinstance(content, (str, bytes, bytearray, memoryview)):
		return HTTPBodyBlob.FromBytes(asBytes(content))
	elif isinstance(content, Path):
		return HTTPBodyFile(content.absolute())
	elif hasattr(content, "read"):
		return HTTPBodyIO(content)
	elif inspect.isgenerator(content) or isinstance(content, Iterable):
		return HTTPBodyStream(content)
	else:
		raise ValueError(f"Unsupported content {type(content)}:{content}")


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class HTTPResponse:
	"""An HTTP response, as a read-only value. Use the `with*` methods to
	derive updated responses."""

	version: str = "1.1"
	status: int = 200
	message: str = ""
	headers: HTTPHeaders = field(default_factory=HTTPHeaders)
	body: THTTPBody | None = None

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		headers: HTTPHeaders | THeadersInput | None = None,
		status: int = 200,
		message: str | None = None,
		version: str = "1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects, filling in the
		reason phrase, content type and content length when not given."""
		body: THTTPBody | None = asBody(content)
		h: HTTPHeaders = HTTPHeaders.Create(headers)
		if contentType is not None and not h.has("Content-Type"):
			h = h.withHeader("Content-Type", contentType)
		# Blobs and files have a known length, streams don't
		if not h.has("Content-Length") and isinstance(
			body, (HTTPBodyBlob, HTTPBodyFile)
		):
			h = h.withHeader("Content-Length", body.length)
		return HTTPResponse(
			version=version,
			status=status,
			message=HTTP_STATUS.get(status, "") if message is None else message,
			headers=h,
			body=body,
		)

	def __post_init__(self) -> None:
		version = self.version
		if isinstance(version, str) and version.startswith("HTTP/"):
			version = version[5:]
			object.__setattr__(self, "version", version)
		if not isinstance(version, str) or not RE_VERSION.match(version):
			raise ValueError(f"Invalid HTTP protocol version: {self.version!r}")
		if (
			isinstance(self.status, bool)
			or not isinstance(self.status, int)
			or not (100 <= self.status <= 599)
		):
			raise ValueError(
				f"Status code must be an integer between 100 and 599, got: {self.status!r}"
			)
		if "\r" in self.message or "\n" in self.message:
			raise ValueError(f"Reason phrase must be a single line: {self.message!r}")
		if not isinstance(self.headers, HTTPHeaders):
			object.__setattr__(self, "headers", HTTPHeaders.Create(self.headers))
		object.__setattr__(self, "body", asBody(self.body))

	# =========================================================================
	# ACCESSORS
	# =========================================================================

	def hasHeader(self, name: str) -> bool:
		return self.headers.has(name)

	def header(self, name: str) -> tuple[str, ...]:
		return self.headers.values(name)

	def headerLine(self, name: str) -> str:
		return self.headers.line(name)

	def render(self) -> bytes:
		"""Returns the whole body as bytes."""
		return self.body.render() if self.body else b""

	# =========================================================================
	# DERIVATIONS
	# =========================================================================

	def withStatus(self, status: int, message: str | None = None) -> "HTTPResponse":
		return replace(
			self,
			status=status,
			message=HTTP_STATUS.get(status, "") if message is None else message,
		)

	def withVersion(self, version: str) -> "HTTPResponse":
		return replace(self, version=version)

	def withHeader(self, name: str, value: THeaderValue) -> "HTTPResponse":
		return replace(self, headers=self.headers.withHeader(name, value))

	def withAddedHeader(self, name: str, value: THeaderValue) -> "HTTPResponse":
		return replace(self, headers=self.headers.withAddedHeader(name, value))

	def withoutHeader(self, name: str) -> "HTTPResponse":
		return replace(self, headers=self.headers.withoutHeader(name))

	def withBody(self, content: Any) -> "HTTPResponse":
		return replace(self, body=asBody(content))

	def __str__(self) -> str:
		return f"Response(HTTP/{self.version} {self.status} {self.message} {self.headers} {self.body})"

# EOF
