"""

# The Event Queue

A Mailbox Registry buffering outbound text per Queue (ie. per client) for a
Server Push channel. Producers append text & may close a Queue; a delivery
loop periodically drains each Queue into a Transport Sink.

- Every Queue holds a single accumulated text buffer. Appends between two
  drains are coalesced into one transmission, each append prefixed with its
  delimiter (so a fresh buffer's first append yields a leading delimiter).
- Closing a Queue schedules termination. The next drain that finds the buffer
  empty transmits the Termination Message & retires the Queue; pending text
  always drains first.
- Retirement is tracked out-of-band of the buffered text. A producer that
  enqueues text equal to the Termination Message does not retire the Queue,
  but the client sees the same text on the wire.
- All operations on a Queue are atomic & totally ordered. Depending on the
  lock scope, operations on different Queues either run concurrently
  (`queue`) or are serialized behind one process wide gate (`global`).
- A drain holds the Queue's gate while it transmits. Drained text is never
  restored if the Sink fails (at most once delivery).

"""
from __future__ import annotations
from typing import Any, Iterable
from dataclasses import dataclass, field, KW_ONLY
from loguru import logger
import asyncio

from .config import QueueConfig
from .errors import SinkError, NO_ERROR
from .gates import KeyedGate, MutexPerKey, lock_scope_t, keyed_gate_factory
from .identity import QueueIdentity, normalize_queue_id
from .sinks import TransportSink, ContextSink

__all__ = [
  'EventQueue',
  'TERMINATE_MESSAGE',
  'DEFAULT_DELIMITER',
]

TERMINATE_MESSAGE = "---terminate---"
"""Transmitted once to a closed Queue after all of its pending text was delivered"""
DEFAULT_DELIMITER = "\n"

@dataclass
class _EventQueueCtx:
  buffers: dict[QueueIdentity, str] = field(default_factory=dict)
  """The pending text of every live Mailbox"""
  terminating: set[QueueIdentity] = field(default_factory=set)
  """Queues that were closed but haven't had their termination drained yet"""

@dataclass
class EventQueue:
  """The Mailbox Registry; construct one per process & share it between producers & the delivery loop."""

  sink: TransportSink = field(default_factory=ContextSink)
  """The default Sink drains are transmitted to"""
  gate: KeyedGate = field(default_factory=MutexPerKey)
  """Serializes operations on a Queue"""

  _: KW_ONLY

  delimiter: str = DEFAULT_DELIMITER
  """The delimiter used when a caller doesn't provide one"""
  poll_interval: float = 1.0
  """Seconds between drains when streaming a Queue"""
  _ctx: _EventQueueCtx = field(default_factory=_EventQueueCtx)

  @classmethod
  def from_config(cls, cfg: QueueConfig, sink: TransportSink | None = None) -> EventQueue:
    """Construct the Event Queue from a (validated) QueueConfig"""
    lock_scope: lock_scope_t = cfg.get('lock_scope', 'queue')
    return cls(
      sink=sink if sink is not None else ContextSink(),
      gate=keyed_gate_factory(lock_scope),
      delimiter=cfg.get('delimiter', DEFAULT_DELIMITER),
      poll_interval=cfg.get('poll_interval', 1.0),
    )

  ### Inspection ###

  def __len__(self) -> int:
    """The number of live Mailboxes"""
    return len(self._ctx.buffers)

  def __contains__(self, queue_id: Any) -> bool:
    """Does a Mailbox exist for the Queue"""
    return normalize_queue_id(queue_id) in self._ctx.buffers

  def is_closing(self, queue_id: Any) -> bool:
    """Was the Queue closed without its termination having been drained yet"""
    return normalize_queue_id(queue_id) in self._ctx.terminating

  def pending(self, queue_id: Any) -> str | None:
    """The text waiting to be drained; None if the Queue has no Mailbox"""
    return self._ctx.buffers.get(normalize_queue_id(queue_id))

  ### Operations ###

  async def enqueue_many(self, queue_id: Any, messages: Iterable[str], delimiter: str | None = None) -> None:
    """Append the messages, joined by the delimiter, to the Queue's buffer; the fragment is prefixed by the delimiter."""
    key = normalize_queue_id(queue_id)
    if isinstance(messages, str): raise TypeError("messages must be an iterable of strings, not a string; use enqueue_single")
    if delimiter is None: delimiter = self.delimiter
    fragment = delimiter + delimiter.join(messages)
    async with self.gate.hold(key):
      if key not in self._ctx.buffers: self._ctx.buffers[key] = ""
      self._ctx.buffers[key] += fragment
    logger.trace(f"Enqueued {len(fragment)} characters onto `{key}`")

  async def enqueue_single(self, queue_id: Any, message: str, delimiter: str | None = None) -> None:
    """Append a single message to the Queue's buffer"""
    await self.enqueue_many(queue_id, [message], delimiter)

  async def close(self, queue_id: Any) -> None:
    """Schedule the Queue for termination; idempotent until the termination is drained."""
    key = normalize_queue_id(queue_id)
    async with self.gate.hold(key):
      if key in self._ctx.terminating: return
      self._ctx.terminating.add(key)
    logger.debug(f"Scheduled `{key}` for termination")

  async def dequeue(self, queue_id: Any, sink: TransportSink | None = None) -> bool:
    """Drain the Queue's buffer into the Sink (exactly one transmission, possibly empty). Returns True if the drain retired the Queue."""
    key = normalize_queue_id(queue_id)
    if sink is None: sink = self.sink
    async with self.gate.hold(key):
      terminal = False
      if key not in self._ctx.buffers: outgoing = "" # Nothing was ever written; the Sink still gets to flush
      elif self._ctx.buffers[key] == "" and key in self._ctx.terminating:
        outgoing, terminal = TERMINATE_MESSAGE, True
        del self._ctx.buffers[key]
        self._ctx.terminating.discard(key)
        logger.debug(f"Retired `{key}`")
      else: outgoing, self._ctx.buffers[key] = self._ctx.buffers[key], ""
      try: err = await sink.transmit(outgoing)
      except Exception:
        logger.opt(exception=True).debug(f"Sink raised while transmitting to `{key}`")
        raise
      if err is not None and err is not NO_ERROR: raise SinkError(key, err)
    return terminal

  async def stream(self, queue_id: Any, sink: TransportSink | None = None, interval: float | None = None) -> None:
    """Drain the Queue every interval (in seconds; defaults to the poll interval) until it is retired."""
    if interval is None: interval = self.poll_interval
    if interval <= 0: raise ValueError("interval must be greater than 0")
    key = normalize_queue_id(queue_id)
    logger.debug(f"Streaming `{key}` every {interval}s")
    while not await self.dequeue(key, sink):
      await asyncio.sleep(interval)
    logger.debug(f"Stream for `{key}` has terminated")
