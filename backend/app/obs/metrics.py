"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"campus_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"campus_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"campus_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"campus_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

CONNECTION_MUTATIONS = Counter(
	"campus_connection_mutations_total",
	"Connection request mutations by operation and result",
	["operation", "result"],
)

CONNECTION_COUNTER_DRIFT = Counter(
	"campus_connection_counter_drift_total",
	"connections_count decrements that failed after the edge was removed",
)

NOTIFICATIONS_CREATED = Counter(
	"campus_notifications_created_total",
	"Notifications persisted",
	["type"],
)

NOTIFICATIONS_READ = Counter(
	"campus_notifications_read_total",
	"Notifications marked read",
)

CHANGE_FEED_EVENTS = Counter(
	"campus_change_feed_events_total",
	"Row-change events published to in-process subscribers",
	["table"],
)

CHANGE_FEED_LISTENER_FAILURES = Counter(
	"campus_change_feed_listener_failures_total",
	"Change feed listeners that raised",
	["table"],
)

EMAILS_SENT = Counter(
	"campus_emails_total",
	"Outbound emails by template and result",
	["template", "result"],
)

ACCOUNTS_PROVISIONED = Counter(
	"campus_accounts_provisioned_total",
	"Accounts created by authorities",
	["result"],
)

REDIS_UP = Gauge("campus_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("campus_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("campus_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("campus_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_connection_mutation(operation: str, result: str) -> None:
	CONNECTION_MUTATIONS.labels(operation=operation, result=result).inc()


def inc_counter_drift() -> None:
	CONNECTION_COUNTER_DRIFT.inc()


def inc_notification_created(kind: str) -> None:
	NOTIFICATIONS_CREATED.labels(type=kind).inc()


def inc_notification_read() -> None:
	NOTIFICATIONS_READ.inc()


def inc_change_feed_event(table: str) -> None:
	CHANGE_FEED_EVENTS.labels(table=table).inc()


def inc_change_feed_failure(table: str) -> None:
	CHANGE_FEED_LISTENER_FAILURES.labels(table=table).inc()


def inc_email(template: str, result: str) -> None:
	EMAILS_SENT.labels(template=template, result=result).inc()


def inc_account_provisioned(result: str) -> None:
	ACCOUNTS_PROVISIONED.labels(result=result).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
