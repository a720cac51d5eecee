"""Event Stream Transport over an aiohttp StreamResponse"""
from __future__ import annotations
from dataclasses import dataclass, field, KW_ONLY
from loguru import logger
import aiohttp.web

from . import TransportSink, frame_event, EVENT_STREAM_CONTENT_TYPE
from ..errors import Error, NO_ERROR_T, NO_ERROR

@dataclass
class EventStreamSink(TransportSink):
  """Writes drained text as Server Sent Events; the response is prepared lazily on the first transmission.

  Empty drains write nothing but still check the connection, so an idle stream notices a client that went away.
  """

  request: aiohttp.web.Request
  response: aiohttp.web.StreamResponse = field(default_factory=aiohttp.web.StreamResponse)

  _: KW_ONLY

  prepared: bool = False

  async def prepare(self) -> None:
    """Send the response headers"""
    if self.prepared: return
    self.response.content_type = EVENT_STREAM_CONTENT_TYPE
    self.response.headers['Cache-Control'] = 'no-cache'
    await self.response.prepare(self.request)
    self.prepared = True

  async def transmit(self, text: str) -> Error | NO_ERROR_T:
    try:
      await self.prepare()
      frame = frame_event(text)
      if frame: await self.response.write(frame)
      elif self.request.transport is None or self.request.transport.is_closing(): raise ConnectionResetError("client disconnected")
    except ConnectionError as e:
      logger.debug(f"Event Stream to {self.request.remote} was interrupted: {e}")
      return { 'kind': 'transport', 'message': str(e) or type(e).__name__ }
    return NO_ERROR
