from dataclasses import FrozenInstanceError
from io import BytesIO, StringIO

import pytest

from emitter.http.model import (
	HTTPBodyBlob,
	HTTPBodyFile,
	HTTPBodyIO,
	HTTPBodyStream,
	HTTPHeaders,
	HTTPResponse,
	headername,
)


def test_headername_normalizes_case():
	assert headername("content-TYPE") == "Content-Type"
	assert headername("SET-COOKIE") == headername("Set-Cookie")


def test_headers_keep_order_and_casing():
	headers = HTTPHeaders.Create(
		[("x-b", "1"), ("Content-Type", "text/plain"), ("X-A", ["2", "3"])]
	)
	assert list(headers) == ["x-b", "Content-Type", "X-A"]
	assert headers.has("X-B")
	assert "content-type" in headers
	assert headers.name("X-B") == "x-b"
	assert headers.values("x-a") == ("2", "3")
	assert headers.line("X-A") == "2, 3"
	assert headers.line("Missing") == ""
	assert headers.values("Missing") == ()


def test_headers_merge_same_name_on_create():
	headers = HTTPHeaders.Create([("Vary", "Accept"), ("vary", "Cookie")])
	assert len(headers) == 1
	assert list(headers.items()) == [("Vary", ("Accept", "Cookie"))]


def test_headers_derivations_do_not_mutate():
	headers = HTTPHeaders.Create({"X-A": "1", "X-B": "2"})
	replaced = headers.withHeader("x-a", ["3", "4"])
	added = headers.withAddedHeader("X-B", 5)
	removed = headers.withoutHeader("X-A")
	assert headers.values("X-A") == ("1",)
	assert headers.values("X-B") == ("2",)
	# Replacing keeps the position and the first casing
	assert list(replaced.items()) == [("X-A", ("3", "4")), ("X-B", ("2",))]
	assert added.values("X-B") == ("2", "5")
	assert list(removed) == ["X-B"]
	assert headers.withoutHeader("Nope") is headers


def test_headers_reject_invalid_values():
	with pytest.raises(ValueError):
		HTTPHeaders.Create({"": "x"})
	with pytest.raises(ValueError):
		HTTPHeaders.Create({"X-A": b"bytes"})
	with pytest.raises(ValueError):
		HTTPHeaders.Create({"X-A": True})


@pytest.mark.parametrize(
	"value", [["a", ["b", "c"]], [[]], None, {"a": "b"}, [b"a"], 1.5]
)
def test_headers_reject_nested_and_missing_values(value):
	with pytest.raises(ValueError):
		HTTPHeaders.Create({"X-A": value})
	with pytest.raises(ValueError):
		HTTPHeaders().withHeader("X-A", value)


def test_headers_accept_flat_lists_of_strings_and_integers():
	headers = HTTPHeaders.Create({"X-A": ["a", 1], "X-B": ("b",)})
	assert headers.values("X-A") == ("a", "1")
	assert headers.values("X-B") == ("b",)


def test_headers_and_responses_are_hashable():
	headers = HTTPHeaders.Create({"X-A": ["1", "2"]})
	assert hash(headers) == hash(HTTPHeaders.Create([("X-A", "1"), ("x-a", "2")]))
	assert {headers: True}[HTTPHeaders.Create({"X-A": ["1", "2"]})]
	first, second = HTTPResponse.Create("x"), HTTPResponse.Create("x")
	assert first == second
	assert hash(first) == hash(second)
	assert len({first, second}) == 1


def test_response_defaults():
	response = HTTPResponse()
	assert response.version == "1.1"
	assert response.status == 200
	assert response.message == ""
	assert len(response.headers) == 0
	assert response.body is None
	assert response.render() == b""


def test_response_is_read_only():
	response = HTTPResponse(status=201)
	with pytest.raises(FrozenInstanceError):
		response.status = 500  # type: ignore
	updated = response.withStatus(404)
	assert response.status == 201
	assert (updated.status, updated.message) == (404, "Not Found")


def test_response_validates_status_and_version():
	for status in (99, 600, True, "200"):
		with pytest.raises(ValueError):
			HTTPResponse(status=status)  # type: ignore
	with pytest.raises(ValueError):
		HTTPResponse(version="one")
	with pytest.raises(ValueError):
		HTTPResponse(message="OK\r\nX-Injected: 1")
	assert HTTPResponse(version="HTTP/1.0").version == "1.0"
	assert HTTPResponse(version="2").version == "2"


def test_response_normalizes_headers_and_body():
	response = HTTPResponse(headers={"Location": "/new"}, body="hello")  # type: ignore
	assert isinstance(response.headers, HTTPHeaders)
	assert response.hasHeader("location")
	assert response.header("LOCATION") == ("/new",)
	assert isinstance(response.body, HTTPBodyBlob)
	assert response.render() == b"hello"


def test_create_fills_message_and_content_headers():
	response = HTTPResponse.Create("héllo", contentType="text/plain", status=202)
	assert response.message == "Accepted"
	assert list(response.headers.items()) == [
		("Content-Type", ("text/plain",)),
		("Content-Length", ("6",)),
	]
	assert response.render() == "héllo".encode("utf8")


def test_create_keeps_given_headers():
	response = HTTPResponse.Create(
		b"data",
		contentType="text/plain",
		headers={"content-type": "application/octet-stream", "Content-Length": "4"},
		message="",
	)
	assert response.message == ""
	assert response.headerLine("Content-Type") == "application/octet-stream"
	assert response.headerLine("Content-Length") == "4"
	assert list(response.headers) == ["content-type", "Content-Length"]


def test_create_unknown_status_has_empty_message():
	assert HTTPResponse.Create(status=299).message == ""


def test_create_file_body(tmp_path):
	path = tmp_path / "index.html"
	path.write_bytes(b"<html></html>")
	response = HTTPResponse.Create(path)
	assert isinstance(response.body, HTTPBodyFile)
	assert response.headerLine("Content-Length") == "13"
	assert list(response.body.chunks(5)) == [b"<html", b"></ht", b"ml>"]


def test_stream_body():
	response = HTTPResponse.Create(["a", b"", b"b", "c"])
	assert isinstance(response.body, HTTPBodyStream)
	assert not response.hasHeader("Content-Length")
	assert list(response.body.chunks()) == [b"a", b"b", b"c"]


def test_io_body_is_rewound():
	io = BytesIO(b"abcdef")
	response = HTTPResponse.Create(io)
	assert isinstance(response.body, HTTPBodyIO)
	assert list(response.body.chunks(4)) == [b"abcd", b"ef"]
	# Reading again yields the same content
	assert response.render() == b"abcdef"


def test_text_io_body():
	response = HTTPResponse.Create(StringIO("text"))
	assert response.render() == b"text"


def test_unsupported_content():
	with pytest.raises(ValueError):
		HTTPResponse.Create(1.5)


# EOF
