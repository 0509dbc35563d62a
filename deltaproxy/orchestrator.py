"""Request orchestrator for /v1/chat/completions.

Owns the per-request lifecycle:

    Idle -> Authenticating -> Dispatching -> Streaming | Aggregating -> Done

with a Failed edge out of every state before the response starts. The
orchestrator builds nothing upstream-specific itself; payloads come
from the UpstreamAdapter and frames are read with its decoder.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import StrEnum

import httpx
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from deltaproxy.errors import (
    Forbidden,
    InternalError,
    ProxyError,
    Unauthorized,
    UpstreamError,
    UpstreamStreamError,
)
from deltaproxy.schemas.config import ProxyConfig
from deltaproxy.schemas.events import ErrorEvent
from deltaproxy.schemas.openai import ChatCompletion, ChatCompletionRequest
from deltaproxy.streaming.accumulator import DeltaAccumulator, StreamSession
from deltaproxy.streaming.aggregator import TextAggregator, aggregate
from deltaproxy.streaming.lexer import FrameLexer, UpstreamFrame, lex_body
from deltaproxy.upstream.base import UpstreamAdapter, UpstreamRequest

logger = logging.getLogger(__name__)

EVENT_STREAM_TYPES = frozenset({"text/event-stream", "application/x-ndjson"})


class RequestState(StrEnum):
    """Lifecycle states of one chat completion request."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    DISPATCHING = "dispatching"
    STREAMING = "streaming"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


class RequestLifecycle:
    """Tracks and logs the state of a single request."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        self.state = RequestState.IDLE

    def advance(self, state: RequestState) -> None:
        logger.debug("[%s] %s -> %s", self.request_id, self.state, state)
        self.state = state


def is_event_stream(response: httpx.Response) -> bool:
    """True when the upstream content-type is a streaming media type."""
    media_type = response.headers.get("content-type", "").split(";", 1)[0]
    return media_type.strip().lower() in EVENT_STREAM_TYPES


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer`` header ("" if absent)."""
    if not authorization:
        return ""
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


class ChatCompletionOrchestrator:
    """Runs chat completion requests against one upstream.

    Holds only immutable collaborators (config, adapter, HTTP client);
    every request gets its own StreamSession, lexer and accumulator.
    """

    def __init__(
        self,
        config: ProxyConfig,
        adapter: UpstreamAdapter,
        client: httpx.AsyncClient,
    ) -> None:
        self._config = config
        self._adapter = adapter
        self._client = client

    @property
    def adapter(self) -> UpstreamAdapter:
        return self._adapter

    # ── Authentication ────────────────────────────────────────

    def authenticate(self, authorization: str | None) -> None:
        """Check the caller's bearer token against the configured secret.

        Raises:
            Unauthorized: A secret is configured and no token was sent.
            Forbidden: The token does not match the secret.
        """
        if not self._config.auth_enabled:
            return
        token = parse_bearer(authorization)
        if not token:
            raise Unauthorized("Missing bearer token")
        if not secrets.compare_digest(token.encode(), self._config.api_key.encode()):
            raise Forbidden("Invalid API key")

    # ── Request lifecycle ─────────────────────────────────────

    async def handle(self, raw_body: bytes, authorization: str | None) -> Response:
        """Serve one /v1/chat/completions call.

        Returns a StreamingResponse when the caller wants a stream and the
        upstream replied with one; a single chat.completion JSON otherwise.

        Raises:
            ProxyError: Any failure before the response has started.
        """
        session = StreamSession(model=self._config.default_model)
        lifecycle = RequestLifecycle(session.request_id)

        try:
            lifecycle.advance(RequestState.AUTHENTICATING)
            self.authenticate(authorization)

            lifecycle.advance(RequestState.DISPATCHING)
            request = self._parse_request(raw_body)
            session.model = request.model or self._config.default_model
            upstream_request = self._adapter.build_request(request, session.model)
            response = await self._dispatch(upstream_request, session.request_id)
        except ProxyError as e:
            lifecycle.advance(RequestState.FAILED)
            logger.info("[%s] Rejected: %s (%d)", session.request_id, e.message, e.status_code)
            raise
        except Exception as e:
            lifecycle.advance(RequestState.FAILED)
            logger.exception("[%s] Request handling failed", session.request_id)
            raise InternalError(str(e) or type(e).__name__) from e

        if request.wants_stream and is_event_stream(response):
            lifecycle.advance(RequestState.STREAMING)
            return StreamingResponse(
                self._stream(response, session, lifecycle),
                media_type="text/event-stream",
                headers={"Cache-Control": "no-cache", "X-Request-Id": session.request_id},
            )

        lifecycle.advance(RequestState.AGGREGATING)
        try:
            text = await self._aggregate(response)
        except UpstreamStreamError as e:
            lifecycle.advance(RequestState.FAILED)
            logger.warning("[%s] Upstream error: %s", session.request_id, e.message)
            raise UpstreamError(e.message) from e
        except httpx.HTTPError as e:
            lifecycle.advance(RequestState.FAILED)
            logger.warning("[%s] Upstream read failed: %s", session.request_id, e)
            raise UpstreamError(f"Upstream read failed: {e}") from e

        lifecycle.advance(RequestState.DONE)
        completion = ChatCompletion.from_text(session.request_id, session.model, text)
        return JSONResponse(
            completion.model_dump(), headers={"X-Request-Id": session.request_id}
        )

    @staticmethod
    def _parse_request(raw_body: bytes) -> ChatCompletionRequest:
        try:
            return ChatCompletionRequest.model_validate_json(raw_body or b"{}")
        except ValidationError as e:
            raise InternalError(f"Invalid request body: {e.errors()[0]['msg']}") from e

    async def _dispatch(self, upstream: UpstreamRequest, request_id: str) -> httpx.Response:
        """Send the upstream request and return the still-open response.

        Raises:
            UpstreamError: On transport failure or a non-2xx status. The
                upstream body text is passed through as the message.
        """
        request = self._client.build_request(
            upstream.method, upstream.url, headers=upstream.headers, json=upstream.body
        )
        logger.debug("[%s] %s %s", request_id, upstream.method, upstream.url)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.warning("[%s] Upstream timed out: %s", request_id, e)
            raise UpstreamError(f"Upstream request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("[%s] Upstream request failed: %s", request_id, e)
            raise UpstreamError(f"Upstream request failed: {e}") from e

        if response.is_success:
            return response

        try:
            body = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = ""
        finally:
            await response.aclose()
        logger.warning("[%s] Upstream returned %d", request_id, response.status_code)
        raise UpstreamError(
            body or f"Upstream returned HTTP {response.status_code}",
            status_code=response.status_code,
        )

    # ── Response paths ────────────────────────────────────────

    async def _stream(
        self,
        response: httpx.Response,
        session: StreamSession,
        lifecycle: RequestLifecycle,
    ) -> AsyncIterator[bytes]:
        """Translate the upstream body into OpenAI SSE, one record at a time.

        Bound to the lifetime of the outbound response: if the caller
        disconnects, the generator is cancelled and the upstream body is
        released in the finally block.
        """
        accumulator = DeltaAccumulator(session)
        decoder = self._adapter.decoder
        try:
            async with aclosing(self._iter_frames(response)) as frames:
                async for frame in frames:
                    event = decoder.decode(frame)
                    for record in accumulator.consume(event):
                        yield record.encode("utf-8")
                    if event.is_terminal:
                        break
        except httpx.HTTPError as e:
            for record in accumulator.consume(ErrorEvent(message=f"Upstream stream interrupted: {e}")):
                yield record.encode("utf-8")
        except asyncio.CancelledError:
            logger.info("[%s] Client disconnected; closing upstream", session.request_id)
            raise
        finally:
            await response.aclose()

        for record in accumulator.close():
            yield record.encode("utf-8")
        lifecycle.advance(RequestState.DONE)

    async def _iter_frames(self, response: httpx.Response) -> AsyncIterator[UpstreamFrame]:
        lexer = FrameLexer(self._adapter.frame_prefix)
        async for chunk in response.aiter_bytes():
            for frame in lexer.feed(chunk):
                yield frame
        if lexer.buffered:
            logger.debug("Upstream body ended mid-line: %.80s", lexer.buffered)
        for frame in lexer.flush():
            yield frame

    async def _aggregate(self, response: httpx.Response) -> str:
        """Drain the upstream body into a single assistant message.

        Raises:
            UpstreamStreamError: If the upstream declared an error.
            httpx.HTTPError: If reading the body fails.
        """
        decoder = self._adapter.decoder
        try:
            if not is_event_stream(response):
                return aggregate(self._body_frames(await response.aread()), decoder)
            aggregator = TextAggregator()
            async with aclosing(self._iter_frames(response)) as frames:
                async for frame in frames:
                    aggregator.add(decoder.decode(frame))
                    if aggregator.finished:
                        break
            return aggregator.text
        finally:
            await response.aclose()

    def _body_frames(self, body: bytes) -> list[UpstreamFrame]:
        """Frames of a non-streaming body.

        A body that is one JSON document is one frame; anything else
        goes through the lexer like a stream would.
        """
        text = body.decode("utf-8", errors="replace").strip()
        if text.startswith(("{", "[")):
            frame = UpstreamFrame(raw=text)
            if self._is_json(frame.payload):
                return [frame]
        return lex_body(body, self._adapter.frame_prefix)

    @staticmethod
    def _is_json(text: str) -> bool:
        try:
            json.loads(text)
        except ValueError:
            return False
        return True
