from eventqueue.testing import test_registry

from .tests import registry, gates, sinks, config, web

test_registry.register_all("eventqueue.registry", {
  "dequeue.unknown_queue": registry.test_dequeue_unknown_queue,
  "enqueue.coalesces": registry.test_enqueue_coalesces,
  "enqueue.empty_messages": registry.test_enqueue_empty_messages,
  "enqueue.rejects_bare_string": registry.test_enqueue_rejects_bare_string,
  "enqueue.leading_delimiter": registry.test_leading_delimiter,
  "identity.case_insensitive": registry.test_case_insensitive_identity,
  "identity.invalid": registry.test_invalid_identity,
  "close.retires_queue": registry.test_close_retires_queue,
  "close.drains_pending_first": registry.test_close_drains_pending_first,
  "close.idempotent": registry.test_close_is_idempotent,
  "close.unwritten_queue": registry.test_close_unwritten_queue,
  "close.terminate_message_collision": registry.test_terminate_message_collision,
  "sink.raises": registry.test_sink_raises,
  "sink.returns_error": registry.test_sink_returns_error,
  "sink.fails_on_termination": registry.test_sink_fails_on_termination,
  "sink.context": registry.test_context_sink,
  "concurrency.producers": registry.test_concurrent_producers,
  "concurrency.dequeue_holds_gate": registry.test_dequeue_holds_gate,
  "stream.until_terminated": registry.test_stream_until_terminated,
})
test_registry.register_all("eventqueue.gates", {
  "MutexPerKey.exclusive": gates.test_MutexPerKey_exclusive,
  "MutexPerKey.independent_keys": gates.test_MutexPerKey_independent_keys,
  "MutexPerKey.cancelled_waiter": gates.test_MutexPerKey_cancelled_waiter,
  "SharedKeyedGate": gates.test_SharedKeyedGate,
  "keyed_gate_factory": gates.test_keyed_gate_factory,
})
test_registry.register_all("eventqueue.sinks", {
  "normalize_queue_id": sinks.test_normalize_queue_id,
  "frame_event": sinks.test_frame_event,
  "BufferSink": sinks.test_BufferSink,
  "ItemLog.bounded": sinks.test_ItemLog_bounded,
})
test_registry.register_all("eventqueue.config", {
  "defaults": config.test_config_defaults,
  "files": config.test_config_files,
  "env_overrides": config.test_config_env_overrides,
  "env_delimiter_escapes": config.test_config_env_delimiter_escapes,
  "invalid": config.test_config_invalid,
  "EventQueue.from_config": config.test_EventQueue_from_config,
  "cli.options_require_values": config.test_cli_options_require_values,
})
test_registry.register_all("eventqueue.web", {
  "service.poll": web.test_service_poll,
  "service.stream": web.test_service_stream,
  "service.bad_requests": web.test_service_bad_requests,
  "service.stream_client_disconnects": web.test_service_stream_client_disconnects,
})
