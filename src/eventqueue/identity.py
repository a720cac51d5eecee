"""Queue Identity Normalization"""
from __future__ import annotations
from typing import Any
from .errors import InvalidIdentityError

QueueIdentity = str
"""A normalized (lower-cased) Queue Identity"""

def normalize_queue_id(queue_id: Any) -> QueueIdentity:
  """Normalize an arbitrary caller supplied token into a Queue Identity; tokens that render to the same lower-case string address the same Mailbox."""
  if queue_id is None: raise InvalidIdentityError("queue_id cannot be None")
  return str(queue_id).lower()
