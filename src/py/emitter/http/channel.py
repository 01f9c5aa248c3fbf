import sys
from abc import ABC, abstractmethod
from io import BytesIO
from typing import IO, Any, Callable, NamedTuple, NoReturn

from mypy_extensions import Arg

from ..utils.io import EOL, asHeaderBytes
from ..utils.logging import debug, logged, warning
from .model import headername

# --
# ## Output channels
#
# An output channel is the capability the host gives to the emitter to
# put a response on the wire. Header lines are committed to a pending header
# set, which is sent as a whole (the head) before the first body byte. Once
# the head is sent, it is committed and no more header lines are accepted.

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class Terminated(BaseException):
	"""Raised by output channels to end the current unit of request handling.
	Hosts catch it where they started handling the request, much like
	`SystemExit` ends a process. It derives from `BaseException` so that
	`except Exception` blocks in the calling code don't intercept it."""

	def __init__(self, channel: "OutputChannel | None" = None):
		super().__init__("Request handling terminated")
		self.channel: OutputChannel | None = channel


class HeaderCommitError(ValueError):
	"""Raised when a status or header line can't be committed to the
	outgoing header set."""


# -----------------------------------------------------------------------------
#
# HEADER SET
#
# -----------------------------------------------------------------------------


class CommitRecord(NamedTuple):
	"""A line committed to a channel, along with its replace flag."""

	line: str
	replace: bool


def isStatusLine(line: str) -> bool:
	return line.startswith("HTTP/")


def linename(line: str) -> str:
	"""Returns the name part of a `Name: value` header line."""
	name, sep, _ = line.partition(":")
	name = name.strip()
	if not sep or not name:
		raise HeaderCommitError(f"Malformed header line: {line!r}")
	return name


class HeaderSet:
	"""The outgoing status line and header lines of one exchange, in commit
	order.

	A status line always replaces the previous one, and starts a new
	emission pass. A header line committed with `replace` removes the lines
	with the same (case-insensitive) name committed since the start of the
	pass, so lines committed by the host beforehand are kept. Otherwise it
	is added as another occurrence."""

	__slots__ = ["status", "lines", "start"]

	DEFAULT_STATUS: str = "HTTP/1.1 200 OK"

	def __init__(self) -> None:
		self.status: str | None = None
		self.lines: list[str] = []
		# Index in `lines` of the first line of the current emission pass
		self.start: int = 0

	def commit(self, line: str, replace: bool = True) -> "HeaderSet":
		if "\r" in line or "\n" in line:
			raise HeaderCommitError(
				f"Header may not contain more than a single header, new line detected: {line!r}"
			)
		if isStatusLine(line):
			self.status = line
			self.start = len(self.lines)
		else:
			name: str = headername(linename(line))
			if replace:
				self.lines = self.lines[: self.start] + [
					_
					for _ in self.lines[self.start :]
					if headername(linename(_)) != name
				]
			self.lines.append(line)
		return self

	def head(self, eol: bytes = EOL) -> bytes:
		"""Serializes the status line and header lines, followed by the empty
		line that separates the head from the body."""
		return (
			b"".join(
				asHeaderBytes(_) + eol
				for _ in [self.status or self.DEFAULT_STATUS, *self.lines]
			)
			+ eol
		)

	def __len__(self) -> int:
		return len(self.lines) + (1 if self.status else 0)


# -----------------------------------------------------------------------------
#
# CHANNELS
#
# -----------------------------------------------------------------------------


class OutputChannel(ABC):
	"""The host capability used to emit a response."""

	@abstractmethod
	def commit(self, line: str, replace: bool = True) -> None:
		"""Commits a status or header line to the outgoing header set."""

	@abstractmethod
	def alreadyCommitted(self) -> bool:
		"""Tells if the head of the exchange has already been sent."""

	@abstractmethod
	def writeBody(self, data: bytes) -> None:
		"""Appends raw bytes to the outgoing body."""

	@abstractmethod
	def terminate(self) -> NoReturn:
		"""Ends the current unit of request handling, never returns."""


class StreamChannel(OutputChannel):
	"""Writes the response to a binary writable, like a socket file or
	`sys.stdout.buffer`. The head is sent on the first body write, or on
	termination when there is no body."""

	__slots__ = ["writable", "headers", "eol", "_committed"]

	def __init__(
		self,
		writable: IO[bytes] | Any,
		*,
		committed: bool = False,
		eol: bytes = EOL,
	) -> None:
		self.writable: IO[bytes] | Any = writable
		self.headers: HeaderSet = HeaderSet()
		self.eol: bytes = eol
		self._committed: bool = committed

	def commit(self, line: str, replace: bool = True) -> None:
		if self._committed:
			raise HeaderCommitError(
				f"Cannot commit header, head already sent: {line!r}"
			)
		self.headers.commit(line, replace)

	def alreadyCommitted(self) -> bool:
		return self._committed

	def writeBody(self, data: bytes) -> None:
		if not self._committed:
			self.sendHead()
		self.writable.write(data)

	def terminate(self) -> NoReturn:
		if not self._committed:
			self.sendHead()
		flush = getattr(self.writable, "flush", None)
		if flush:
			flush()
		raise Terminated(self)

	def head(self) -> bytes:
		return self.headers.head(self.eol)

	def sendHead(self) -> bytes:
		head = self.head()
		logged(debug) and debug(
			"Sending head",
			Channel=self.__class__.__name__,
			Lines=len(self.headers),
			Size=len(head),
		)
		self.writable.write(head)
		self._committed = True
		return head


class MemoryChannel(StreamChannel):
	"""An in-memory channel that keeps track of everything that was
	committed and written. The `committed` flag simulates a head that was
	already sent by another component."""

	__slots__ = ["commits", "body", "terminated"]

	def __init__(self, *, committed: bool = False, eol: bytes = EOL) -> None:
		super().__init__(BytesIO(), committed=committed, eol=eol)
		self.commits: list[CommitRecord] = []
		self.body: bytearray = bytearray()
		self.terminated: bool = False

	def commit(self, line: str, replace: bool = True) -> None:
		super().commit(line, replace)
		self.commits.append(CommitRecord(line, replace))

	def writeBody(self, data: bytes) -> None:
		super().writeBody(data)
		self.body += data

	def terminate(self) -> NoReturn:
		self.terminated = True
		super().terminate()

	def __bytes__(self) -> bytes:
		"""Returns what was sent on the wire."""
		return self.writable.getvalue()


class CGIChannel(StreamChannel):
	"""Writes the response as a CGI script output: the status is sent as
	a `Status` header and terminating the request ends the process."""

	# SEE: https://www.rfc-editor.org/rfc/rfc3875#section-6.3.3

	def __init__(
		self,
		writable: IO[bytes] | Any = None,
		*,
		committed: bool = False,
		eol: bytes = EOL,
	) -> None:
		super().__init__(
			sys.stdout.buffer if writable is None else writable,
			committed=committed,
			eol=eol,
		)

	def head(self) -> bytes:
		lines: list[str] = list(self.headers.lines)
		if self.headers.status:
			_, _, status = self.headers.status.partition(" ")
			lines.insert(0, f"Status: {status}")
		return b"".join(asHeaderBytes(_) + self.eol for _ in lines) + self.eol

	def terminate(self) -> NoReturn:
		try:
			super().terminate()
		except Terminated:
			sys.exit(0)


# --
# Signatures of the host functions wrapped by `FunctionChannel`
TCommit = Callable[[Arg(str, "line"), Arg(bool, "replace")], Any]
TCommitted = Callable[[], bool]
TWrite = Callable[[Arg(bytes, "data")], Any]
TTerminate = Callable[[], Any]


class FunctionChannel(OutputChannel):
	"""Adapts host functions to the output channel interface."""

	__slots__ = ["_commit", "_committed", "_write", "_terminate"]

	def __init__(
		self,
		commit: TCommit,
		committed: TCommitted,
		write: TWrite,
		terminate: TTerminate | None = None,
	) -> None:
		self._commit: TCommit = commit
		self._committed: TCommitted = committed
		self._write: TWrite = write
		self._terminate: TTerminate | None = terminate

	def commit(self, line: str, replace: bool = True) -> None:
		self._commit(line, replace)

	def alreadyCommitted(self) -> bool:
		return bool(self._committed())

	def writeBody(self, data: bytes) -> None:
		self._write(data)

	def terminate(self) -> NoReturn:
		if self._terminate:
			self._terminate()
			warning(
				"Host terminate function returned, ending request handling",
				Function=getattr(self._terminate, "__name__", "?"),
			)
		raise Terminated(self)


# EOF
