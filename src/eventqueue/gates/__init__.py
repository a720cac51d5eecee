"""

# Gates

A Gate is a concurrency primitive that is used to manage access between
a pool of resources and a pool of workers. The Gate is used to control
the flow of access to the resources.

A Keyed Gate extends this to a keyspace: each key is an independent
resource & holding a key grants exclusive access to that key only.

"""
from __future__ import annotations
from typing import Protocol, Any, AsyncGenerator, Literal, runtime_checkable
from abc import abstractmethod
from contextlib import asynccontextmanager, AbstractAsyncContextManager
from dataclasses import dataclass, field, KW_ONLY
from loguru import logger
import asyncio

__all__ = [
  'Gate', 'MutexGate',
  'KeyedGate', 'SharedKeyedGate', 'MutexPerKey',
  'lock_scope_t', 'keyed_gate_factory',
]

@runtime_checkable
class Gate(Protocol):
  """A Gate to manage concurrent access to some singular or pool of resources"""

  async def __aenter__(self) -> Gate:
    """Acquire the Gate"""
    await self.acquire()
    return self

  async def __aexit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
    """Release the Gate"""
    await self.release()

  @abstractmethod
  async def acquire(self) -> None: ...

  @abstractmethod
  async def release(self) -> None: ...

@runtime_checkable
class KeyedGate(Protocol):
  """A Gate granting exclusive access per key"""

  @abstractmethod
  def hold(self, key: str) -> AbstractAsyncContextManager[None]:
    """Hold the key for the duration of the context; waits for any current holder to release it."""
    ...

  @abstractmethod
  def locked(self, key: str) -> bool:
    """Check if the key is currently held"""
    ...

### Concrete Implementations ###

@dataclass
class MutexGate(Gate):
  """A Gate admitting a single holder at a time"""

  mutex: asyncio.Lock = field(default_factory=asyncio.Lock)

  @property
  def locked(self) -> bool: return self.mutex.locked()

  async def acquire(self) -> None: await self.mutex.acquire()
  async def release(self) -> None: self.mutex.release()

@dataclass
class SharedKeyedGate(KeyedGate):
  """Every key shares one process wide Gate; holding any key excludes all other keys."""

  gate: MutexGate = field(default_factory=MutexGate)

  @asynccontextmanager
  async def hold(self, key: str) -> AsyncGenerator[None, None]:
    async with self.gate:
      logger.trace(f"Holding shared gate for `{key}`")
      yield

  def locked(self, key: str) -> bool:
    return self.gate.locked

@dataclass
class _KeyState:
  gate: MutexGate = field(default_factory=MutexGate)
  refs: int = 0
  """Holders plus Waiters of the key; the key is retired when this drops to 0"""

@dataclass
class MutexPerKey(KeyedGate):
  """Each key owns its own Gate; Gates are created on first use & retired once nobody holds or waits on them."""

  _: KW_ONLY
  _keys: dict[str, _KeyState] = field(default_factory=dict)

  def __len__(self) -> int:
    """The number of live keys"""
    return len(self._keys)

  def __contains__(self, key: str) -> bool:
    return key in self._keys

  @asynccontextmanager
  async def hold(self, key: str) -> AsyncGenerator[None, None]:
    # NOTE: The refcount is bumped before the first suspension point so a concurrent release can't retire a Gate we are about to wait on
    if key not in self._keys: self._keys[key] = _KeyState()
    state = self._keys[key]
    state.refs += 1
    try:
      async with state.gate:
        logger.trace(f"Holding gate for `{key}`")
        yield
    finally:
      state.refs -= 1
      if state.refs <= 0:
        del self._keys[key]
        logger.trace(f"Retired gate for `{key}`")

  def locked(self, key: str) -> bool:
    if key not in self._keys: return False
    return self._keys[key].gate.locked

lock_scope_t = Literal['queue', 'global']

def keyed_gate_factory(scope: lock_scope_t) -> KeyedGate:
  """Create the Keyed Gate for a locking scope"""
  if scope == 'queue': return MutexPerKey()
  elif scope == 'global': return SharedKeyedGate()
  else: raise ValueError(f"invalid lock scope '{scope}'")
