from enum import Enum
from typing import Iterator, NoReturn

from ..config import CHUNK_SIZE, LOG_EMISSIONS
from ..utils.logging import debug, error, event, logged
from .channel import CommitRecord, OutputChannel
from .model import HTTPResponse

# --
# ## Emitter
#
# Emits an `HTTPResponse` on an `OutputChannel`: status line, then the
# header lines, then the body, and then terminates the request handling.
# Emission can't be undone or retried: the only check happens before
# anything is committed.
#
# SEE: https://www.rfc-editor.org/rfc/rfc9112#section-4 Status Line
# SEE: https://www.rfc-editor.org/rfc/rfc9110#section-5.3 Field Order
# SEE: https://www.rfc-editor.org/rfc/rfc6265#section-3 Set-Cookie

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class AlreadyEmittedError(RuntimeError):
	"""Raised when the head of the exchange was already sent by another
	component. Nothing is committed or written when this is raised."""

	def __init__(self, response: HTTPResponse | None = None):
		super().__init__("Headers already sent. The response could not be emitted.")
		self.response: HTTPResponse | None = response


# -----------------------------------------------------------------------------
#
# LINES
#
# -----------------------------------------------------------------------------


def statusline(response: HTTPResponse) -> str:
	"""Formats the status line, keeping the trailing space when the reason
	phrase is empty."""
	return f"HTTP/{response.version} {response.status} {response.message}"


def iscookie(name: str) -> bool:
	return name.lower() == "set-cookie"


def headerlines(response: HTTPResponse) -> Iterator[CommitRecord]:
	"""Yields the header lines to commit, in header insertion order.
	`Set-Cookie` values are each committed as a separate line, any other
	header is committed as a single comma-separated line that replaces
	previous lines with the same name."""
	for name, values in response.headers.items():
		if iscookie(name):
			for value in values:
				yield CommitRecord(f"{name}: {value}", False)
		else:
			yield CommitRecord(f"{name}: {', '.join(values)}", True)


def isredirect(response: HTTPResponse) -> bool:
	"""A response with a `Location` header has its body suppressed."""
	return response.hasHeader("Location")


# -----------------------------------------------------------------------------
#
# EMITTER
#
# -----------------------------------------------------------------------------


class EmissionState(Enum):
	Init = 0
	StatusSent = 1
	HeadersSent = 2
	BodySuppressed = 3
	BodyWritten = 4
	Terminated = 10
	Faulted = 20


class ResponseEmitter:
	"""Emits responses on the given output channel. Each call to `emit` ends
	the request handling through `OutputChannel.terminate`, so an emitter
	emits at most one response per exchange."""

	__slots__ = ["channel", "chunkSize", "state", "written"]

	def __init__(self, channel: OutputChannel, *, chunkSize: int = CHUNK_SIZE):
		self.channel: OutputChannel = channel
		self.chunkSize: int = chunkSize
		self.state: EmissionState = EmissionState.Init
		# Number of body bytes written by the last emission
		self.written: int = 0

	def emit(self, response: HTTPResponse) -> NoReturn:
		"""Emits the response and terminates the request handling, raising
		`AlreadyEmittedError` if the head was already sent."""
		self.state = EmissionState.Init
		self.written = 0
		self.checkCommitted(response)
		self.sendStatusLine(response)
		self.sendHeaders(response)
		self.sendBody(response)
		try:
			self.channel.terminate()
		except Exception:
			# The head may only be sent on termination, in which case the
			# response did not make it: the state stays at the body step.
			raise
		except BaseException:
			self.state = EmissionState.Terminated
			if LOG_EMISSIONS:
				event(
					"Emitted",
					response.status,
					Headers=len(response.headers),
					Body=self.written,
				)
			raise
		raise RuntimeError(
			f"Output channel did not terminate the request: {self.channel}"
		)

	def checkCommitted(self, response: HTTPResponse) -> None:
		if self.channel.alreadyCommitted():
			self.state = EmissionState.Faulted
			error(
				"Headers already sent, the response could not be emitted",
				"ALREADYEMITTED",
				Status=response.status,
			)
			raise AlreadyEmittedError(response)

	def sendStatusLine(self, response: HTTPResponse) -> None:
		line: str = statusline(response)
		logged(debug) and debug("Emitting status", Line=line)
		self.channel.commit(line, True)
		self.state = EmissionState.StatusSent

	def sendHeaders(self, response: HTTPResponse) -> None:
		for line, replace in headerlines(response):
			logged(debug) and debug("Emitting header", Line=line, Replace=replace)
			self.channel.commit(line, replace)
		self.state = EmissionState.HeadersSent

	def sendBody(self, response: HTTPResponse) -> None:
		if isredirect(response):
			logged(debug) and debug(
				"Suppressing body of redirect", Location=response.headerLine("Location")
			)
			self.state = EmissionState.BodySuppressed
		else:
			if response.body is not None:
				for chunk in response.body.chunks(self.chunkSize):
					self.channel.writeBody(chunk)
					self.written += len(chunk)
			self.state = EmissionState.BodyWritten


def emit(
	response: HTTPResponse, channel: OutputChannel, *, chunkSize: int = CHUNK_SIZE
) -> NoReturn:
	"""Emits the response on the given channel, see `ResponseEmitter.emit`."""
	ResponseEmitter(channel, chunkSize=chunkSize).emit(response)


# EOF
