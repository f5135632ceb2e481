"""Request builder with lazy values and secret masking.

RequestBuilder collects the parts of an HTTP request as lazy values and
renders them into an httpx.Request only when the request is sent. Rendering
happens once per send, so a value bound by reference (a Ref or a callable)
is read at that moment.

Configuration never raises. The first unusable value is kept as a sticky
error and raised every time the request is built, which keeps long fluent
chains readable:

    RequestBuilder(123).header("a", "b")  # fine
    await RequestBuilder(123).send()      # ConfigurationError

Secrets:
    secret_header() and basic_auth() store the real value under a
    placeholder ``${MASKED_<n>}`` and put the placeholder in the header.
    secret() registers a named placeholder that any header, query value,
    body, URL or path may embed. build() substitutes the real values;
    build_masked() and dump() substitute masks of the same length, so the
    text can be logged. A literal ``${name}`` in unrelated text is
    substituted as well.

Examples:
    Building and sending::

        token = Ref("secret")
        builder = (
            RequestBuilder("https://api.example.com")
            .method("POST")
            .path("v1/items")
            .header("token", token)
            .query("dry_run", "true")
            .json_body({"name": "widget"})
            .timeout(5)
        )
        result = await builder.send_json()

    Reusing a base configuration concurrently::

        base = RequestBuilder("https://api.example.com").basic_auth("user", "pw")
        results = await asyncio.gather(
            base.clone().path("a").send_json(),
            base.clone().path("b").send_json(),
        )
"""

import base64
import json
from collections.abc import Callable
from typing import IO, Any

import httpx

from resilient_requests.config import RequestsConfig
from resilient_requests.core.deadline import deadline_scope
from resilient_requests.exceptions import ConfigurationError, RequestBuildError, RequestsError
from resilient_requests.executors import (
    DEFAULT_DRAIN_LIMIT,
    Executor,
    HttpxExecutor,
    StatusCheckingExecutor,
)
from resilient_requests.lazy import Constant, LazyValue, secret_key, to_lazy
from resilient_requests.response import JSONResponse
from resilient_requests.utils.headers import set_header, substitute_secrets
from resilient_requests.utils.wire import (
    MASKED_DUMP_EXTENSION,
    dump_request,
    join_url,
    validate_method,
)

APPLICATION_JSON = "application/json"


def default_executor(config: RequestsConfig | None = None) -> Executor:
    """Return the executor used by builders that were not given one.

    Non-2xx responses become StatusError after their body is drained.
    """
    drain_limit = config.drain_limit_bytes if config is not None else DEFAULT_DRAIN_LIMIT
    return StatusCheckingExecutor(HttpxExecutor(), drain_limit=drain_limit)


def _json_marshaller(value: Any) -> Callable[[], str]:
    def marshal() -> str:
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise RequestBuildError(f"can not marshal JSON body: {e}") from e

    return marshal


class RequestBuilder:
    """Fluent, lazily rendered HTTP request.

    Every configuration method returns the builder itself.

    Attributes:
        config: Configuration the builder was created with
    """

    def __init__(self, url: Any = "", *, config: RequestsConfig | None = None) -> None:
        """Create a builder for ``url`` with an empty path.

        Args:
            url: Base URL (text, Ref, callable or LazyValue)
            config: Supplies the default timeout and drain limit
        """
        self.config = config
        self._method: LazyValue | None = None
        self._base_url: LazyValue | None = None
        self._path: LazyValue | None = None
        self._body: LazyValue | None = None
        self._headers: dict[str, LazyValue] = {}
        self._query: dict[str, LazyValue] = {}
        self._secrets: dict[str, LazyValue] = {}
        self._timeout: float | None = config.default_timeout_seconds if config else None
        self._error: RequestsError | None = None
        self._executor: Executor = default_executor(config)
        self.url(url).path("")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _set_error(self, error: RequestsError) -> None:
        if self._error is None:
            self._error = error

    def _lazy(self, value: Any, secret: bool = False) -> LazyValue | None:
        try:
            lazy = to_lazy(value)
        except ConfigurationError as e:
            self._set_error(e)
            return None

        if secret:
            name = f"MASKED_{len(self._secrets) + 1}"
            self._secrets[secret_key(name)] = lazy
            return Constant(secret_key(name))
        return lazy

    @property
    def error(self) -> RequestsError | None:
        """The sticky configuration error, if any."""
        return self._error

    def method(self, value: Any) -> "RequestBuilder":
        """Set the HTTP method (GET when never set)."""
        self._method = self._lazy(value)
        return self

    def url(self, value: Any) -> "RequestBuilder":
        """Set the base URL."""
        self._base_url = self._lazy(value)
        return self

    def path(self, value: Any) -> "RequestBuilder":
        """Set the path appended to the base URL."""
        self._path = self._lazy(value)
        return self

    def body(self, content_type: str, value: Any) -> "RequestBuilder":
        """Set the body and its Content-Type."""
        self._body = self._lazy(value)
        return self.content_type(content_type)

    def header(self, key: str, value: Any) -> "RequestBuilder":
        """Set a header, replacing one that differs only in case."""
        lazy = self._lazy(value)
        if lazy is not None:
            set_header(self._headers, key, lazy)
        return self

    def secret_header(self, key: str, value: Any) -> "RequestBuilder":
        """Set a header whose value is masked in dumps and logs."""
        lazy = self._lazy(value, secret=True)
        if lazy is not None:
            set_header(self._headers, key, lazy)
        return self

    def secret(self, name: str, value: Any) -> "RequestBuilder":
        """Register a secret that other values reference as ``${name}``."""
        lazy = self._lazy(value)
        if lazy is not None:
            self._secrets[secret_key(name)] = lazy
        return self

    def query(self, key: str, value: Any) -> "RequestBuilder":
        """Set a query parameter."""
        lazy = self._lazy(value)
        if lazy is not None:
            self._query[key] = lazy
        return self

    def timeout(self, seconds: float | None) -> "RequestBuilder":
        """Bound each send by ``seconds`` (None removes the bound)."""
        self._timeout = seconds
        return self

    def use_executor(self, executor: Executor) -> "RequestBuilder":
        """Send with ``executor`` instead of the default one."""
        self._executor = executor
        return self

    @property
    def executor(self) -> Executor:
        """The executor requests are sent with."""
        return self._executor

    def json_body(self, value: Any) -> "RequestBuilder":
        """Send ``value`` as JSON, serialized again on every render."""
        return self.body(APPLICATION_JSON, _json_marshaller(value))

    def basic_auth(self, user: str, password: str) -> "RequestBuilder":
        """Set a masked basic Authorization header."""
        credentials = base64.b64encode(f"{user}:{password}".encode()).decode("ascii")
        return self.secret_header("Authorization", "Basic " + credentials)

    def content_type(self, content_type: str) -> "RequestBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render(self) -> tuple[httpx.Request, httpx.Request]:
        """Render every lazy value once; return the real and masked requests."""
        method = self._method.render() if self._method is not None else "GET"
        if self._error is not None:
            raise self._error
        validate_method(method)

        secrets = {key: value.render() for key, value in self._secrets.items()}

        def text(value: LazyValue | None) -> str:
            return value.render() if value is not None else ""

        base_url = text(self._base_url)
        path = text(self._path)
        body = text(self._body) if self._body is not None else None
        query = sorted((key, text(value)) for key, value in self._query.items())
        headers = [(key, text(value)) for key, value in self._headers.items()]

        def assemble(masked: bool) -> httpx.Request:
            def sub(value: str) -> str:
                return substitute_secrets(value, secrets, masked)

            url = httpx.URL(join_url(sub(base_url), sub(path)))
            if query:
                if url.query:
                    raise ConfigurationError("raw query and query param not allowed")
                url = url.copy_with(params=[(key, sub(value)) for key, value in query])

            content = sub(body).encode("utf-8") if body is not None else None
            return httpx.Request(
                method,
                url,
                headers=[(key, sub(value)) for key, value in headers],
                content=content,
            )

        return assemble(masked=False), assemble(masked=True)

    def build(self) -> httpx.Request:
        """Render the request to send.

        The masked dump of the same request is attached as the
        MASKED_DUMP_EXTENSION extension for loggers.

        Returns:
            The request with real secret values

        Raises:
            ConfigurationError: Sticky configuration error, or a raw query
                in the URL together with query parameters.
            RequestBuildError: The method is not a valid token.
        """
        request, masked = self._render()
        request.extensions[MASKED_DUMP_EXTENSION] = dump_request(masked)
        return request

    def build_masked(self) -> httpx.Request:
        """Render the request with every secret replaced by a mask."""
        return self._render()[1]

    def dump(self) -> str:
        """Return the masked request as HTTP/1.1 text."""
        return dump_request(self.build_masked())

    def write(self, fp: IO[str]) -> None:
        """Write the masked request as HTTP/1.1 text to ``fp``."""
        fp.write(self.dump())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _send(self) -> httpx.Response:
        request = self.build()
        return await self._executor.execute(request)

    async def send(self) -> httpx.Response:
        """Build and send the request.

        The builder's timeout bounds the whole call, retries included.

        Returns:
            The response. The caller must read or close it.
        """
        async with deadline_scope(self._timeout):
            return await self._send()

    async def send_json(self) -> JSONResponse:
        """Send with ``Accept: application/json`` and parse the response."""
        return await self.send_json_into(JSONResponse())

    async def send_json_into(self, result: JSONResponse) -> JSONResponse:
        """Like send_json(), reusing the buffer and parser of ``result``.

        Args:
            result: JSONResponse to fill

        Returns:
            ``result``
        """
        self.header("Accept", APPLICATION_JSON)
        async with deadline_scope(self._timeout):
            response = await self._send()
            return await result.load(response)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget everything but the timeout and the executor."""
        self._method = None
        self._base_url = None
        self._path = None
        self._body = None
        self._error = None
        self._headers.clear()
        self._query.clear()
        self._secrets.clear()

    def clone(self) -> "RequestBuilder":
        """Return an independent copy for concurrent reuse.

        Header, query and secret mappings are copied. Lazy values are
        shared, so a Ref bound in the original is also bound in the clone.
        """
        other = RequestBuilder(config=self.config)
        other._method = self._method
        other._base_url = self._base_url
        other._path = self._path
        other._body = self._body
        other._error = self._error
        other._executor = self._executor
        other._timeout = self._timeout
        other._headers = dict(self._headers)
        other._query = dict(self._query)
        other._secrets = dict(self._secrets)
        return other


def new_get(url: Any, *, config: RequestsConfig | None = None) -> RequestBuilder:
    """Return a builder for a GET request to ``url``."""
    return RequestBuilder(url, config=config).method("GET")


def new_post(url: Any, *, config: RequestsConfig | None = None) -> RequestBuilder:
    """Return a builder for a POST request to ``url``."""
    return RequestBuilder(url, config=config).method("POST")
