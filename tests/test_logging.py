from emitter.utils.logging import (
	LogLevel,
	debug,
	error,
	formatData,
	level,
	logged,
	setThreshold,
	warning,
)


def test_level_names():
	assert level("debug") is LogLevel.Debug
	assert level(" WARNING ") is LogLevel.Warning
	assert level("verbose") is LogLevel.Info


def test_threshold_filters_entries(log):
	previous = setThreshold(LogLevel.Warning)
	try:
		assert not logged(debug)
		assert logged(error)
		debug("Hidden entry")
		warning("Shown entry", Count=2)
	finally:
		setThreshold(previous)
	output = log.getvalue()
	assert "Hidden entry" not in output
	assert "Shown entry" in output
	assert "Count" in output


def test_format_data():
	assert formatData(None) == "◌"
	assert formatData(True) == "✓"
	assert formatData(1.234) == "1.23"
	assert formatData("a b") == "'a b'"
	assert formatData(["a", 1]) == "a,1"


# EOF
