"""Pipeline harness: convert a request, send it, convert the reply.

The transport is a collaborator. :class:`HttpTransport` posts JSON with
httpx; any other object with an async ``send`` works. Retries, backoff and
credential refresh belong to the transport's owner, not to this harness.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

import httpx

from llmcompat.compat.module import CompatibilityModule, ConversionContext
from llmcompat.core.errors import TransportError
from llmcompat.utils.telemetry import ATTR_PROVIDER, ATTR_REQUEST_ID, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

CredentialProvider = Callable[[], str | Awaitable[str]]


@runtime_checkable
class Transport(Protocol):
    """Delivers a converted request and returns the raw vendor reply."""

    async def send(self, payload: dict[str, Any], context: ConversionContext) -> dict[str, Any]: ...


class HttpTransport:
    """POST converted requests as JSON to a single endpoint.

    ``credential`` is called once per request and its value sent as a bearer
    token; it may be sync or async.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        credential: CredentialProvider | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.url = url
        self._client = client
        self._credential = credential
        self._headers = dict(headers or {})
        self._timeout = timeout

    async def _auth_headers(self) -> dict[str, str]:
        if self._credential is None:
            return {}
        token = self._credential()
        if inspect.isawaitable(token):
            token = await token
        return {"Authorization": f"Bearer {token}"}

    async def send(self, payload: dict[str, Any], context: ConversionContext) -> dict[str, Any]:
        headers = {**self._headers, **await self._auth_headers(), "X-Request-ID": context.request_id}
        logger.debug("POST %s (request_id=%s)", self.url, context.request_id)

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(self.url, str(exc), exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise TransportError(self.url, str(exc)) from exc

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise TransportError(self.url, f"invalid JSON reply: {exc}", response.status_code) from exc
        if not isinstance(data, dict):
            raise TransportError(self.url, "reply is not a JSON object", response.status_code)
        return data


class CompatibilityPipeline:
    """Run one request through ``convert_request -> transport -> convert_response``.

    Usage::

        pipeline = CompatibilityPipeline(module, HttpTransport("https://vendor.example/v1/chat"))
        openai_response = await pipeline.run(openai_request)
    """

    def __init__(self, module: CompatibilityModule, transport: Transport) -> None:
        self._module = module
        self._transport = transport

    @property
    def module(self) -> CompatibilityModule:
        return self._module

    async def run(self, request: dict[str, Any], context: ConversionContext | None = None) -> dict[str, Any]:
        """Convert *request*, send it, and convert the vendor reply.

        The module is configured on first use.
        """
        await self._module.configure()
        context = context or ConversionContext()

        with _tracer.start_as_current_span("llmcompat.pipeline.run") as span:
            span.set_attribute(ATTR_REQUEST_ID, context.request_id)
            if context.provider:
                span.set_attribute(ATTR_PROVIDER, context.provider)

            mapped = self._module.convert_request(request, context)
            raw = await self._transport.send(mapped, context)
            return self._module.convert_response(raw, context)
