"""JSON view over an HTTP response.

A JSONResponse holds the parsed body of a response together with the raw
httpx.Response, and offers typed lookups by key path in the style of
lightweight JSON tree libraries: a missing key or a value of the wrong type
yields the zero value ("" / 0 / []) instead of raising.

Reading the body:

1. Without Content-Encoding and with a known Content-Length, exactly that
   many bytes are read. A stream that ends early raises UnexpectedEOFError.
2. Otherwise the body is read to the end of the stream.

The bytes are collected in a buffer owned by the JSONResponse, which is
reused when the same JSONResponse is loaded again.

Examples:
    Reading fields::

        result = await RequestBuilder(url).send_json()
        result.get_string("user", "name")     # 'Alice'
        result.get_int("user", "age")         # 42
        result.get_array("user", "roles")     # [JSONValue('admin'), ...]
        result.get_string("items", "0", "id") # array index as string key
        result.header("X-Request-Id")

    Plugging a parser::

        result = JSONResponse(parser=MyParser())
        await builder.send_json_into(result)
"""

import json
from typing import Any, Protocol, runtime_checkable

import httpx

from resilient_requests.exceptions import ParseError, UnexpectedEOFError


class JSONValue:
    """A parsed JSON value with key-path accessors.

    String keys index objects; decimal string keys index arrays.

    Attributes:
        value: The plain Python value (dict, list, str, int, float, bool, None)
    """

    def __init__(self, value: Any) -> None:
        self.value = value

    def get(self, *keys: str) -> "JSONValue | None":
        """Return the value at ``keys``, or None if the path does not exist."""
        current = self.value
        for key in keys:
            if isinstance(current, dict):
                if key not in current:
                    return None
                current = current[key]
            elif isinstance(current, list):
                try:
                    index = int(key)
                except ValueError:
                    return None
                if not 0 <= index < len(current):
                    return None
                current = current[index]
            else:
                return None
        return JSONValue(current)

    def get_string(self, *keys: str) -> str:
        """Return the string at ``keys``, or "" if missing or not a string."""
        found = self.get(*keys)
        if found is None or not isinstance(found.value, str):
            return ""
        return found.value

    def get_int(self, *keys: str) -> int:
        """Return the integer at ``keys``, or 0 if missing or not an integer."""
        found = self.get(*keys)
        if found is None or isinstance(found.value, bool) or not isinstance(found.value, int):
            return 0
        return found.value

    def get_array(self, *keys: str) -> list["JSONValue"]:
        """Return the array at ``keys``, or [] if missing or not an array."""
        found = self.get(*keys)
        if found is None or not isinstance(found.value, list):
            return []
        return [JSONValue(item) for item in found.value]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JSONValue):
            return bool(self.value == other.value)
        return NotImplemented

    def __repr__(self) -> str:
        return f"JSONValue({self.value!r})"


@runtime_checkable
class JSONParser(Protocol):
    """Protocol for JSON parsers."""

    def parse(self, data: bytes) -> JSONValue:
        """Parse ``data`` into a JSONValue.

        Raises:
            ParseError: If ``data`` is not valid JSON.
        """
        ...


class StdlibJSONParser:
    """JSONParser backed by the json module."""

    def parse(self, data: bytes) -> JSONValue:
        try:
            return JSONValue(json.loads(data))
        except (ValueError, UnicodeDecodeError) as e:
            raise ParseError(f"invalid JSON body: {e}", cause=e) from e


def _content_length(response: httpx.Response) -> int | None:
    encoding = response.headers.get("Content-Encoding", "identity").strip().lower()
    if encoding not in ("", "identity"):
        # The decoded body has no known length
        return None
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


async def read_body(response: httpx.Response, buffer: bytearray) -> bytearray:
    """Read the body of ``response`` into ``buffer``.

    The buffer is cleared first. The response is not closed.

    Args:
        response: The response to read
        buffer: Buffer receiving the body

    Returns:
        The filled buffer

    Raises:
        UnexpectedEOFError: If fewer than Content-Length bytes arrive.
    """
    del buffer[:]
    length = _content_length(response)
    if length == 0:
        return buffer

    try:
        content = response.content
    except httpx.ResponseNotRead:
        content = None

    if content is not None:
        # Already buffered by the executor
        buffer.extend(content if length is None else content[:length])
    elif length is not None:
        async for chunk in response.aiter_raw():
            buffer.extend(chunk[: length - len(buffer)])
            if len(buffer) >= length:
                break
    else:
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)

    if length is not None and len(buffer) < length:
        raise UnexpectedEOFError("unexpected EOF")
    return buffer


class JSONResponse:
    """Parsed JSON body of a response plus the raw response.

    Attributes:
        raw: The httpx.Response the body was read from
        parser: Parser used by load(); defaults to StdlibJSONParser
    """

    def __init__(self, parser: JSONParser | None = None) -> None:
        self.raw: httpx.Response | None = None
        self.parser = parser
        self._value: JSONValue | None = None
        self._buf = bytearray()
        self._pending = 0

    def set_parser(self, parser: JSONParser) -> None:
        """Use ``parser`` for subsequent loads."""
        self.parser = parser

    async def load(self, response: httpx.Response) -> "JSONResponse":
        """Read, parse and close ``response``.

        The internal buffer is reused unless a previous load of this object
        is still reading into it, in which case a new buffer is used.

        Args:
            response: Response to read

        Returns:
            self

        Raises:
            UnexpectedEOFError: The body is shorter than Content-Length.
            ParseError: The body is not valid JSON.
        """
        buffer = self._buf if self._pending == 0 else bytearray()
        self._pending += 1
        try:
            await read_body(response, buffer)
        finally:
            self._pending -= 1
            await response.aclose()

        self._buf = buffer
        self.raw = response
        if self.parser is None:
            self.parser = StdlibJSONParser()
        self._value = self.parser.parse(bytes(buffer))
        return self

    def body(self) -> JSONValue:
        """Return the parsed document."""
        if self._value is None:
            return JSONValue(None)
        return self._value

    def get_string(self, *keys: str) -> str:
        """Return the string at ``keys`` ("" if missing)."""
        return self.body().get_string(*keys)

    def get_int(self, *keys: str) -> int:
        """Return the integer at ``keys`` (0 if missing)."""
        return self.body().get_int(*keys)

    def get_array(self, *keys: str) -> list[JSONValue]:
        """Return the array at ``keys`` ([] if missing)."""
        return self.body().get_array(*keys)

    def header(self, key: str) -> str:
        """Return the response header ``key`` ("" if absent)."""
        if self.raw is None:
            return ""
        return self.raw.headers.get(key, "")
