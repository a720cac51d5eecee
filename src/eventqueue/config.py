"""

# Configuration

The Event Queue is configured from an (optional) JSON or YAML document
overlaid with environment variables:

| Key             | Env Var                    | Default                 |
|-----------------|----------------------------|-------------------------|
| `delimiter`     | `EVENTQUEUE_DELIMITER`     | `"\\n"`                 |
| `lock_scope`    | `EVENTQUEUE_LOCK_SCOPE`    | `queue`                 |
| `poll_interval` | `EVENTQUEUE_POLL_INTERVAL` | `1.0`                   |
| `listen`        | `EVENTQUEUE_LISTEN`        | `tcp://127.0.0.1:8080`  |

`EVENTQUEUE_DELIMITER` decodes the escapes `\\n`, `\\r`, `\\t` & `\\\\` so a newline
can be set from a shell; any other backslash is kept as is.

"""
from __future__ import annotations
from typing import TypedDict, NotRequired, Any, Mapping
from loguru import logger
import pathlib
import re
import orjson
import yaml

from .gates import lock_scope_t

__all__ = [
  'QueueConfig',
  'ConfigError',
  'load_config',
]

class ConfigError(ValueError):
  """The Configuration is invalid"""

_ENV_VARS: dict[str, str] = {
  'delimiter': 'EVENTQUEUE_DELIMITER',
  'lock_scope': 'EVENTQUEUE_LOCK_SCOPE',
  'poll_interval': 'EVENTQUEUE_POLL_INTERVAL',
  'listen': 'EVENTQUEUE_LISTEN',
}

class QueueConfig(TypedDict):
  delimiter: NotRequired[str]
  """The default line delimiter used when enqueueing"""
  lock_scope: NotRequired[lock_scope_t]
  """Lock per Queue (`queue`) or serialize every Queue behind one lock (`global`)"""
  poll_interval: NotRequired[float]
  """Seconds between drains of a streaming Queue"""
  listen: NotRequired[str]
  """The URL the HTTP service listens on; `tcp://host:port` or `unix:///path/to/socket`"""

  @staticmethod
  def factory(**kwargs) -> QueueConfig:
    return {
      'delimiter': "\n",
      'lock_scope': 'queue',
      'poll_interval': 1.0,
      'listen': 'tcp://127.0.0.1:8080',
    } | kwargs

  @staticmethod
  def validate(cfg: QueueConfig):
    logger.trace("Validating the Queue Configuration")
    if not isinstance(cfg, dict): raise ConfigError("Configuration must be a dictionary")
    unknown = set(cfg.keys()) - set(_ENV_VARS.keys())
    if unknown: raise ConfigError(f"Unknown Configuration keys: {', '.join(sorted(unknown))}")
    if 'delimiter' in cfg and not isinstance(cfg['delimiter'], str): raise ConfigError("'delimiter' must be a string")
    if 'lock_scope' in cfg and cfg['lock_scope'] not in ('queue', 'global'): raise ConfigError("'lock_scope' must be one of 'queue', 'global'")
    if 'poll_interval' in cfg:
      if isinstance(cfg['poll_interval'], bool) or not isinstance(cfg['poll_interval'], (int, float)): raise ConfigError("'poll_interval' must be a number")
      if cfg['poll_interval'] <= 0: raise ConfigError("'poll_interval' must be greater than 0")
    if 'listen' in cfg:
      if not isinstance(cfg['listen'], str): raise ConfigError("'listen' must be a string")
      if not cfg['listen'].startswith(('tcp://', 'unix://')): raise ConfigError("'listen' must be a tcp:// or unix:// URL")

def _load_map(file: pathlib.Path) -> dict[str, Any]:
  if not (file.exists() and file.is_file()): raise ConfigError(f"File '{file}' does not exist or is not a file")
  if file.suffix == '.json':
    try: return orjson.loads(file.read_bytes())
    except orjson.JSONDecodeError as e: raise ConfigError(f"Failed to parse '{file}': {e}")
  elif file.suffix in ('.yaml', '.yml'):
    try: return yaml.safe_load(file.read_text()) or {}
    except yaml.YAMLError as e: raise ConfigError(f"Failed to parse '{file}': {e}")
  else: raise ConfigError(f"Unsupported configuration format: {file.suffix}")

_DELIMITER_ESCAPES = { "n": "\n", "r": "\r", "t": "\t", "\\": "\\" }
_DELIMITER_ESCAPE = re.compile(r"\\([nrt\\])")

def _unescape_delimiter(value: str) -> str:
  return _DELIMITER_ESCAPE.sub(lambda m: _DELIMITER_ESCAPES[m[1]], value)

def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
  overrides: dict[str, Any] = {}
  for key, var in _ENV_VARS.items():
    if var not in env: continue
    logger.trace(f"Found Environment Override {var}")
    if key == 'poll_interval':
      try: overrides[key] = float(env[var])
      except ValueError: raise ConfigError(f"{var} must be a number; got '{env[var]}'")
    elif key == 'delimiter': overrides[key] = _unescape_delimiter(env[var])
    else: overrides[key] = env[var]
  return overrides

def load_config(file: str | pathlib.Path | None, env: Mapping[str, str]) -> QueueConfig:
  """Load the Configuration from an optional document & the environment; environment variables take precedence."""
  cfg: dict[str, Any] = {}
  if file is not None:
    logger.debug(f"Loading Configuration from {file}")
    cfg = _load_map(pathlib.Path(file))
  QueueConfig.validate(cfg)
  cfg = QueueConfig.factory(**cfg) | _env_overrides(env)
  QueueConfig.validate(cfg)
  return cfg
