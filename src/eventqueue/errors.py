"""

# Errors

Exceptions raised by the Event Queue & Errors (not Exceptions) returned across the Sink seam.

"""
from __future__ import annotations
from typing import TypedDict

NO_ERROR_T = type('NO_ERROR', (), {})
NO_ERROR = NO_ERROR_T()

class Error(TypedDict):
  """An Error"""

  kind: str
  """The Kind of Error"""
  message: str
  """A Human Readable description about the Error that is helpful"""

  @staticmethod
  def render(error: Error) -> str: return f"{error['kind']}: {error['message']}"

class InvalidIdentityError(ValueError):
  """The Queue Identity was absent (ie. None)"""

class SinkError(RuntimeError):
  """A Transport Sink reported an Error while transmitting drained text."""
  def __init__(self, queue_id: str, error: Error):
    super().__init__(queue_id, error)
    self.queue_id = queue_id
    self.error = error

  def __str__(self) -> str:
    return f"failed to transmit to queue '{self.queue_id}': {Error.render(self.error)}"
