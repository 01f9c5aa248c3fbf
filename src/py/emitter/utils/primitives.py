from typing import TypeAlias

TLiteral: TypeAlias = bool | int | float | str | bytes
TComposite: TypeAlias = (
	list[TLiteral] | dict[TLiteral, TLiteral] | tuple[TLiteral, ...]
)
# Values that can be attached as context to log entries.
TPrimitive: TypeAlias = TLiteral | TComposite | None


# EOF
