"""

# Event Queue HTTP Service

Exposes an Event Queue over HTTP:

- `GET /queues/{queue_id}`: Drain the Queue once; the response is an Event Stream holding whatever was pending.
- `GET /queues/{queue_id}/stream`: Drain the Queue every poll interval until it is closed & its termination delivered.
- `POST /queues/{queue_id}`: Enqueue; the body is `{"messages": [...], "delimiter": "..."}` or `{"message": "..."}`.
- `DELETE /queues/{queue_id}`: Close the Queue.

"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any
from loguru import logger
import aiohttp.web
import orjson

from . import RouteSpec, HttpMethod
from ..registry import EventQueue
from ..errors import SinkError
from ..sinks.http import EventStreamSink

__all__ = [
  'EventQueueService',
]

def _json_error(status: int, kind: str, message: str) -> aiohttp.web.Response:
  return aiohttp.web.Response(
    status=status,
    body=orjson.dumps({ 'kind': kind, 'message': message }),
    content_type="application/json",
  )

def _parse_enqueue_body(body: Any) -> tuple[list[str], str | None]:
  """Validate an Enqueue Request Body returning (messages, delimiter)"""
  if not isinstance(body, dict): raise ValueError("body must be a JSON object")
  if 'messages' in body and 'message' in body: raise ValueError("specify only one of 'messages' or 'message'")
  if 'messages' in body:
    messages = body['messages']
    if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages): raise ValueError("'messages' must be a list of strings")
  elif 'message' in body:
    if not isinstance(body['message'], str): raise ValueError("'message' must be a string")
    messages = [body['message']]
  else: raise ValueError("body must contain 'messages' or 'message'")
  delimiter = body.get('delimiter')
  if delimiter is not None and not isinstance(delimiter, str): raise ValueError("'delimiter' must be a string")
  return messages, delimiter

@dataclass
class EventQueueService:
  queue: EventQueue

  @property
  def route_specs(self) -> frozenset[RouteSpec]:
    """The Route Specifications for the Service"""
    return frozenset([
      RouteSpec(
        method=HttpMethod.GET,
        path=PurePath("/queues/{queue_id}"),
        handler_factory=lambda: self.poll,
      ),
      RouteSpec(
        method=HttpMethod.GET,
        path=PurePath("/queues/{queue_id}/stream"),
        handler_factory=lambda: self.stream,
      ),
      RouteSpec(
        method=HttpMethod.POST,
        path=PurePath("/queues/{queue_id}"),
        handler_factory=lambda: self.enqueue,
      ),
      RouteSpec(
        method=HttpMethod.DELETE,
        path=PurePath("/queues/{queue_id}"),
        handler_factory=lambda: self.close,
      ),
    ])

  async def poll(self, request: aiohttp.web.Request) -> aiohttp.web.StreamResponse:
    """Client is polling; drain its Queue once"""
    sink = EventStreamSink(request)
    try: await self.queue.dequeue(request.match_info['queue_id'], sink)
    except SinkError as e: logger.debug(str(e)) # The client went away; what was drained is lost
    return sink.response

  async def stream(self, request: aiohttp.web.Request) -> aiohttp.web.StreamResponse:
    """Client is subscribing; keep draining its Queue until it is terminated"""
    sink = EventStreamSink(request)
    try: await self.queue.stream(request.match_info['queue_id'], sink)
    except SinkError as e: logger.debug(str(e))
    return sink.response

  async def enqueue(self, request: aiohttp.web.Request) -> aiohttp.web.Response:
    """Producer is appending to a Queue"""
    try: messages, delimiter = _parse_enqueue_body(orjson.loads(await request.read()))
    except orjson.JSONDecodeError as e: return _json_error(400, 'invalid-json', str(e))
    except ValueError as e: return _json_error(400, 'invalid-body', str(e))
    await self.queue.enqueue_many(request.match_info['queue_id'], messages, delimiter)
    return aiohttp.web.Response(status=204)

  async def close(self, request: aiohttp.web.Request) -> aiohttp.web.Response:
    """Producer is ending a Queue"""
    await self.queue.close(request.match_info['queue_id'])
    return aiohttp.web.Response(status=204)
