from os import getenv
from .utils.io import DEFAULT_ENCODING  # NOQA: F401

# Logs an event for every response that was emitted
LOG_EMISSIONS: bool = getenv("EMITTER_LOG_EMISSIONS", "1") == "1"

# Name of the lowest `LogLevel` that is sent to the log output
LOG_LEVEL: str = getenv("EMITTER_LOG_LEVEL", "Info")

# Read size used when copying file and IO bodies to the output channel
CHUNK_SIZE: int = int(getenv("EMITTER_CHUNK_SIZE", 64_000))

# EOF
