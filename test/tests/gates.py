from __future__ import annotations
import asyncio
from contextlib import AbstractAsyncContextManager
from eventqueue.testing import TestResult, TestCode

__all__ = [
  "test_MutexPerKey_exclusive",
  "test_MutexPerKey_independent_keys",
  "test_MutexPerKey_cancelled_waiter",
  "test_SharedKeyedGate",
  "test_keyed_gate_factory",
]

async def test_MutexPerKey_exclusive(*args, **kwargs) -> TestResult:
  from eventqueue.gates import MutexPerKey
  try:
    gate = MutexPerKey()
    holders: list[int] = []
    max_holders = 0
    async def _hold():
      nonlocal max_holders
      async with gate.hold("k"):
        holders.append(1)
        max_holders = max(max_holders, len(holders))
        await asyncio.sleep(0.001)
        holders.pop()
    await asyncio.gather(*[_hold() for _ in range(10)])
    assert max_holders == 1, f"At most one task should hold a key; saw {max_holders}"
    assert len(gate) == 0, f"An idle key should be retired; {len(gate)} keys remain"
    assert not gate.locked("k"), "An idle key should not be locked"
  except AssertionError as e: return TestResult(TestCode.FAIL, str(e))
  return TestResult(TestCode.PASS)

async def test_MutexPerKey_independent_keys(*args, **kwargs) -> TestResult:
  from eventqueue.gates import MutexPerKey
  try:
    gate = MutexPerKey()
    release = asyncio.Event()
    async def _hold_a():
      async with gate.hold("a"): await release.wait()
    holder = asyncio.create_task(_hold_a())
    await asyncio.sleep(0)
    assert gate.locked("a"), "Key `a` should be held"
    assert "a" in gate, "A held key should be live"
    async with asyncio.timeout(1.0):
      async with gate.hold("b"):
        assert gate.locked("a") and gate.locked("b"), "Both keys should be held at once"
    release.set()
    await holder
    assert len(gate) == 0, f"Expected every key to be retired; {len(gate)} remain"
  except (AssertionError, TimeoutError) as e: return TestResult(TestCode.FAIL, str(e) or "Holding an independent key timed out")
  return TestResult(TestCode.PASS)

async def test_MutexPerKey_cancelled_waiter(*args, **kwargs) -> TestResult:
  from eventqueue.gates import MutexPerKey
  try:
    gate = MutexPerKey()
    release = asyncio.Event()
    async def _hold():
      async with gate.hold("k"): await release.wait()
    holder = asyncio.create_task(_hold())
    await asyncio.sleep(0)
    waiter = asyncio.create_task(_hold())
    await asyncio.sleep(0)
    waiter.cancel()
    try: await waiter
    except asyncio.CancelledError: pass
    assert "k" in gate, "The key should stay live while it is held"
    release.set()
    await holder
    assert "k" not in gate, "A cancelled waiter should not keep the key alive"
    # The key can be held again afterwards
    async with asyncio.timeout(1.0):
      async with gate.hold("k"): pass
  except (AssertionError, TimeoutError) as e: return TestResult(TestCode.FAIL, str(e) or "Re-holding the key timed out")
  return TestResult(TestCode.PASS)

async def test_SharedKeyedGate(*args, **kwargs) -> TestResult:
  from eventqueue.gates import SharedKeyedGate
  try:
    gate = SharedKeyedGate()
    release = asyncio.Event()
    async def _hold_a():
      async with gate.hold("a"): await release.wait()
    holder = asyncio.create_task(_hold_a())
    await asyncio.sleep(0)
    assert gate.locked("b"), "Every key should share the one gate"
    order: list[str] = []
    async def _hold_b():
      async with gate.hold("b"): order.append("b")
    other = asyncio.create_task(_hold_b())
    await asyncio.sleep(0.01)
    assert not other.done(), "Holding `b` should wait for `a` to be released"
    order.append("a")
    release.set()
    await holder
    async with asyncio.timeout(1.0): await other
    assert order == ["a", "b"], f"Expected `b` to be held only after `a` was released; got {order}"
    assert not gate.locked("a"), "The gate should be free once every holder released it"
  except (AssertionError, TimeoutError) as e: return TestResult(TestCode.FAIL, str(e) or "Holding the shared gate timed out")
  return TestResult(TestCode.PASS)

async def test_keyed_gate_factory(*args, **kwargs) -> TestResult:
  from eventqueue.gates import keyed_gate_factory, MutexPerKey, SharedKeyedGate, KeyedGate
  try:
    assert isinstance(keyed_gate_factory('queue'), MutexPerKey), "`queue` scope should lock per key"
    assert isinstance(keyed_gate_factory('global'), SharedKeyedGate), "`global` scope should share one lock"
    assert isinstance(keyed_gate_factory('queue'), KeyedGate), "Gates should satisfy the KeyedGate Protocol"
    for scope in ('queue', 'global'):
      hold = keyed_gate_factory(scope).hold("k")
      assert isinstance(hold, AbstractAsyncContextManager), f"[{scope}] Holding a key should yield an async context manager; got {type(hold).__name__}"
      async with hold: pass
    try:
      keyed_gate_factory('shard')
      assert False, "An unknown scope should be rejected"
    except ValueError: pass
  except AssertionError as e: return TestResult(TestCode.FAIL, str(e))
  return TestResult(TestCode.PASS)
