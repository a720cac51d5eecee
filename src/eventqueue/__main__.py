from __future__ import annotations
import os, sys, asyncio, signal
from typing import TypedDict, NotRequired
from yarl import URL
from loguru import logger

### Local Imports
from .config import QueueConfig, ConfigError, load_config
from .registry import EventQueue
from .web import WebServer
from .web.service import EventQueueService
###

async def cmd_serve(cfg: QueueConfig) -> int:
  """Serve a single Event Queue over HTTP until interrupted"""
  queue = EventQueue.from_config(cfg)
  service = EventQueueService(queue)
  srv = WebServer(listen=URL(cfg['listen']))
  for route in service.route_specs: srv.register_route(route)

  loop = asyncio.get_running_loop()
  shutdown = asyncio.Event()
  for sig in (signal.SIGINT, signal.SIGTERM): loop.add_signal_handler(sig, shutdown.set)

  await srv.start()
  logger.info(f"Serving Event Queue (lock scope `{cfg['lock_scope']}`, poll interval {cfg['poll_interval']}s)")
  try: await shutdown.wait()
  finally:
    logger.info("Shutting down")
    await srv.stop()
  return 0

def main(args: tuple[str, ...], kwargs: CLI_KWARGS) -> int:
  logger.trace(f"Starting main function with arguments: {args}\nKeywords: {kwargs}")
  if len(args) < 1: raise CLIError("No subcommand provided")
  subcmd = args[0]
  if subcmd == 'serve':
    for opt in ('config', 'listen'):
      if opt in kwargs and not isinstance(kwargs[opt], str): raise CLIError(f"--{opt} requires a value; ie. --{opt}=...")
    try:
      cfg = load_config(kwargs.get('config'), os.environ)
      if 'listen' in kwargs: cfg['listen'] = kwargs['listen']
      QueueConfig.validate(cfg)
    except ConfigError as e: raise CLIError(str(e))
    return asyncio.run(cmd_serve(cfg))
  else:
    raise CLIError(f"Unknown subcommand '{subcmd}'")

class CLIError(RuntimeError): pass

def setup_logging(log_level: str = os.environ.get('LOG_LEVEL', 'INFO')):
  logger.remove()
  logger.add(sys.stderr, level=log_level, enqueue=True, colorize=True)
  logger.trace(f'Log level set to {log_level}')

def finalize_logging():
  logger.complete()

class CLI_KWARGS(TypedDict):
  log: str
  """The Log Level"""
  config: NotRequired[str]
  """The Configuration File (JSON or YAML); if omitted, defaults & the environment are used"""
  listen: NotRequired[str]
  """Overrides the Listen URL of the Configuration"""

def parse_argv(argv: list[str], env: dict[str, str]) -> tuple[tuple[str, ...], CLI_KWARGS]:
  args = []
  kwargs = {
    "log": env.get('LOG_LEVEL', 'INFO'),
  }
  if 'EVENTQUEUE_CONFIG' in env: kwargs['config'] = env['EVENTQUEUE_CONFIG']
  for idx, arg in enumerate(argv):
    if arg == '--':
      logger.trace(f"Found end of arguments at index {idx}")
      args.extend(argv[idx+1:])
      break
    elif arg.startswith('--'):
      logger.trace(f"Found keyword argument: {arg}")
      if '=' in arg: key, value = arg[2:].split('=', 1)
      else: key, value = arg[2:], True
      kwargs[key] = value
    else:
      logger.trace(f"Found positional argument: {arg}")
      args.append(arg)
  return tuple(args), kwargs

if __name__ == '__main__':
  setup_logging()
  _rc = 255
  try:
    args, kwargs = parse_argv(sys.argv[1:], os.environ)
    logger.trace(f"Arguments: {args}\nKeywords: {kwargs}")
    setup_logging(kwargs['log']) # Reconfigure logging
    _rc = main(args, kwargs)
  except CLIError as e:
    logger.error(str(e))
    _rc = 2
  except Exception:
    logger.opt(exception=True).critical('Unhandled exception')
    _rc = 3
  finally:
    finalize_logging()
    sys.stdout.flush()
    sys.stderr.flush()
  sys.exit(_rc)
