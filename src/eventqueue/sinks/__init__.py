"""

# Transport Sinks

A Transport Sink delivers the text drained from a Mailbox to a client. The
Event Queue doesn't own the transport; it calls `transmit` exactly once per
drain, including drains that produced no text so the Sink can flush or send
a keep-alive.

A Sink reports failure either by returning an `Error` or by raising; returned
Errors are surfaced to the caller of `dequeue` as a `SinkError`.

"""
from __future__ import annotations
from typing import Protocol, Iterator, runtime_checkable
from abc import abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from loguru import logger
import re

from ..errors import Error, NO_ERROR_T, NO_ERROR
from ..log import ItemLog

__all__ = [
  'TransportSink',
  'BufferSink',
  'ContextSink',
  'frame_event',
  'EVENT_STREAM_CONTENT_TYPE',
]

EVENT_STREAM_CONTENT_TYPE = "text/event-stream"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

def frame_event(text: str) -> bytes:
  """Frame text as a single Event Stream `data` event (UTF-8); empty text frames to nothing."""
  if not text: return b""
  return ("".join(f"data: {line}\n" for line in _LINE_BREAK.split(text)) + "\n").encode("utf-8")

@runtime_checkable
class TransportSink(Protocol):
  """Delivers drained text to a client"""

  @abstractmethod
  async def transmit(self, text: str) -> Error | NO_ERROR_T:
    """Frame & deliver the text (possibly empty), flushing before returning."""
    ...

@dataclass
class BufferSink(TransportSink):
  """Records every transmission (empty ones included) for in-process consumers."""

  transmissions: ItemLog[str] = field(default_factory=ItemLog)

  def __len__(self) -> int: return len(self.transmissions)

  @property
  def texts(self) -> list[str]:
    """Everything transmitted so far, oldest first"""
    return list(self.transmissions)

  async def transmit(self, text: str) -> Error | NO_ERROR_T:
    item = await self.transmissions.push(text, block=False)
    if item is not None: return { 'kind': 'full', 'message': f"buffer is full; dropped {len(text)} characters" }
    return NO_ERROR

  async def next(self, block: bool = True) -> str | None:
    """Pop the oldest recorded transmission"""
    return await self.transmissions.pop(block=block)

_active_sink: ContextVar[TransportSink | None] = ContextVar("eventqueue_active_sink", default=None)

@dataclass(frozen=True)
class ContextSink(TransportSink):
  """Forwards to whatever Sink is bound to the current context; lets a single Event Queue serve many concurrent clients (ie. one per request)."""

  var: ContextVar[TransportSink | None] = field(default=_active_sink)

  @contextmanager
  def bind(self, sink: TransportSink) -> Iterator[TransportSink]:
    """Bind the Sink for the current context"""
    token = self.var.set(sink)
    try: yield sink
    finally: self.var.reset(token)

  @property
  def bound(self) -> TransportSink | None: return self.var.get()

  async def transmit(self, text: str) -> Error | NO_ERROR_T:
    sink = self.var.get()
    if sink is None:
      logger.warning("Transmission attempted without a bound Sink")
      return { 'kind': 'unbound', 'message': "no Transport Sink is bound to the current context" }
    return await sink.transmit(text)
