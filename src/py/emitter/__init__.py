from .http.model import HTTPHeaders, HTTPResponse  # NOQA: F401
from .http.channel import (
	OutputChannel,
	StreamChannel,
	MemoryChannel,
	CGIChannel,
	FunctionChannel,
	HeaderCommitError,
	Terminated,
)  # NOQA: F401
from .http.emitter import (
	ResponseEmitter,
	EmissionState,
	AlreadyEmittedError,
	emit,
)  # NOQA: F401


# EOF
