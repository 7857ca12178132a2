"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"centerhub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"centerhub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"centerhub_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"centerhub_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

TREE_WRITES = Counter(
	"centerhub_tree_writes_total",
	"Committed keyed-tree writes",
	["op"],
)

TREE_CONFLICTS = Counter(
	"centerhub_tree_transaction_conflicts_total",
	"Optimistic transaction retries caused by concurrent writers",
)

TREE_WRITE_FAILURES = Counter(
	"centerhub_tree_write_failures_total",
	"Keyed-tree writes rejected by the backend",
	["op"],
)

TREE_LISTENER_FAILURES = Counter(
	"centerhub_tree_listener_failures_total",
	"Change listeners that raised while being notified",
)

TREE_FEED_MESSAGES = Counter(
	"centerhub_tree_feed_messages_total",
	"Change feed messages received from other processes",
	["result"],
)

LIVE_SUBSCRIPTIONS = Gauge(
	"centerhub_live_subscriptions",
	"Active live data subscriptions per feature",
	["feature"],
)

LIVE_DELIVERIES = Counter(
	"centerhub_live_deliveries_total",
	"Snapshots delivered by live data subscriptions",
	["result"],
)

FANOUT_RECIPIENTS = Counter(
	"centerhub_fanout_recipients_total",
	"Notification fanout writes per outcome",
	["type", "result"],
)

INITIALIZER_WRITES = Counter(
	"centerhub_initializer_writes_total",
	"Feature subtrees created or repaired by the lazy initializer",
	["feature", "result"],
)

PERMISSION_DENIED = Counter(
	"centerhub_permission_denied_total",
	"Mutations rejected by the permission gate",
	["rule"],
)

AI_GENERATIONS = Counter(
	"centerhub_ai_generations_total",
	"Text generation flow outcomes",
	["flow", "result"],
)

AI_LATENCY = Histogram(
	"centerhub_ai_generation_duration_seconds",
	"Text generation call latency in seconds",
	["flow"],
	buckets=(0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

REDIS_UP = Gauge(
	"centerhub_redis_up",
	"Redis connectivity (1 = ok)",
)

REDIS_LATENCY = Histogram(
	"centerhub_redis_ping_seconds",
	"Redis ping latency in seconds",
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def tree_write(op: str) -> None:
	TREE_WRITES.labels(op=op).inc()


def tree_conflict() -> None:
	TREE_CONFLICTS.inc()


def tree_write_failed(op: str) -> None:
	TREE_WRITE_FAILURES.labels(op=op).inc()


def tree_listener_failed() -> None:
	TREE_LISTENER_FAILURES.inc()


def tree_feed_message(result: str) -> None:
	TREE_FEED_MESSAGES.labels(result=result).inc()


def live_subscribed(feature: str) -> None:
	LIVE_SUBSCRIPTIONS.labels(feature=feature).inc()


def live_unsubscribed(feature: str) -> None:
	LIVE_SUBSCRIPTIONS.labels(feature=feature).dec()


def live_delivery(result: str) -> None:
	LIVE_DELIVERIES.labels(result=result).inc()


def fanout_recipient(notification_type: str, result: str) -> None:
	FANOUT_RECIPIENTS.labels(type=notification_type, result=result).inc()


def initializer_write(feature: str, result: str) -> None:
	INITIALIZER_WRITES.labels(feature=feature, result=result).inc()


def permission_denied(rule: str) -> None:
	PERMISSION_DENIED.labels(rule=rule).inc()


def ai_generation(flow: str, result: str, *, latency_seconds: float | None = None) -> None:
	AI_GENERATIONS.labels(flow=flow, result=result).inc()
	if latency_seconds is not None:
		AI_LATENCY.labels(flow=flow).observe(latency_seconds)


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)
