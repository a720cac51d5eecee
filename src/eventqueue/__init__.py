"""

# eventqueue

Buffers outbound text per client for a Server Push channel & drives the
graceful termination of a client's stream.

"""
from .errors import Error, NO_ERROR, NO_ERROR_T, InvalidIdentityError, SinkError
from .identity import QueueIdentity, normalize_queue_id
from .registry import EventQueue, TERMINATE_MESSAGE, DEFAULT_DELIMITER
from .sinks import TransportSink, BufferSink, ContextSink, frame_event
from .config import QueueConfig, ConfigError, load_config

__all__ = [
  'Error', 'NO_ERROR', 'NO_ERROR_T', 'InvalidIdentityError', 'SinkError',
  'QueueIdentity', 'normalize_queue_id',
  'EventQueue', 'TERMINATE_MESSAGE', 'DEFAULT_DELIMITER',
  'TransportSink', 'BufferSink', 'ContextSink', 'frame_event',
  'QueueConfig', 'ConfigError', 'load_config',
]
