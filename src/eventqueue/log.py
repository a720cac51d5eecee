"""

Implements an Asynchronous Log of Items; used to hand transmissions from the Event Queue to in-process consumers.

"""
from __future__ import annotations
from typing import Generic, TypeVar, Iterator, Literal
from dataclasses import dataclass, field
from collections import deque
import asyncio

__all__ = [
  'ItemLog'
]

I = TypeVar("I")

def _create_event(state: bool) -> asyncio.Event:
  event = asyncio.Event()
  if state: event.set()
  return event

@dataclass
class _ItemLogCtx:
  not_empty: asyncio.Event = field(default_factory=lambda: _create_event(False))
  """Is the Item Log not empty"""
  not_full: asyncio.Event = field(default_factory=lambda: _create_event(True))
  """Is the Item Log not Full"""

@dataclass
class ItemLog(Generic[I]):
  """An Async Log of Items; bounded if the backing deque has a maxlen"""

  log: deque[I] = field(default_factory=deque)
  """The Item Log"""
  mutex: asyncio.Lock = field(default_factory=asyncio.Lock)
  """The Async Lock for Mutually Exclusive Access to the Log"""
  _ctx: _ItemLogCtx = field(default_factory=_ItemLogCtx)

  def __len__(self) -> int: return len(self.log)
  def __iter__(self) -> Iterator[I]: return iter(tuple(self.log))
  def __getitem__(self, idx: int) -> I: return self.log[idx]

  @property
  def empty(self) -> bool: return len(self.log) <= 0

  @property
  def full(self) -> bool:
    if self.log.maxlen is None: return False
    return len(self.log) >= self.log.maxlen

  def _sync_events(self) -> None:
    if self.empty: self._ctx.not_empty.clear()
    else: self._ctx.not_empty.set()
    if self.full: self._ctx.not_full.clear()
    else: self._ctx.not_full.set()

  async def clear(self) -> None:
    """Drop every Item in the Log."""
    async with self.mutex:
      self.log.clear()
      self._sync_events()

  async def peek(self, block: bool = True, mode: Literal['head', 'tail'] = 'head') -> I | None:
    """Return the head of the Log (by default) without removing it; if non-blocking & log is empty return None."""
    while True:
      if block: await self._ctx.not_empty.wait()
      elif not self._ctx.not_empty.is_set(): return None
      async with self.mutex:
        if self.empty: continue # Lost the race to another consumer
        if mode == 'head': return self.log[0]
        elif mode == 'tail': return self.log[-1]
        else: raise ValueError(f"Invalid mode: {mode}")

  async def pop(self, block: bool = True, mode: Literal['head', 'tail'] = 'head') -> I | None:
    """Pop the head of the Log (by default); if non-blocking & log is empty return None."""
    while True:
      if block: await self._ctx.not_empty.wait()
      elif not self._ctx.not_empty.is_set(): return None
      async with self.mutex:
        if self.empty: continue # Lost the race to another consumer
        if mode == 'head': item = self.log.popleft()
        elif mode == 'tail': item = self.log.pop()
        else: raise ValueError(f"Invalid mode: {mode}")
        self._sync_events()
        return item

  async def push(self, item: I, block: bool = True, mode: Literal['head', 'tail'] = 'tail') -> I | None:
    """Push an Item onto the tail of the log (by default) returning the item if non-blocking & log is full."""
    while True:
      if self.full:
        if not block: return item
        await self._ctx.not_full.wait()
      async with self.mutex:
        if self.full: continue # Lost the race to another producer
        if mode == 'tail': self.log.append(item)
        elif mode == 'head': self.log.appendleft(item)
        else: raise ValueError(f"Invalid mode: {mode}")
        self._sync_events()
        return None
