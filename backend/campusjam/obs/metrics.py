"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary

REQUEST_COUNTER = Counter(
	"campusjam_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"campusjam_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"campusjam_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"campusjam_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

FOLLOWS_TOTAL = Counter(
	"campusjam_follows_total",
	"Follow graph mutations",
	["action"],
)

BLOCKS_TOTAL = Counter(
	"campusjam_blocks_total",
	"Block operations",
	["action"],
)

REPORTS_TOTAL = Counter(
	"campusjam_reports_total",
	"User reports filed",
)

NOTIFICATIONS_TOTAL = Counter(
	"campusjam_notifications_total",
	"Notifications persisted",
	["kind"],
)

DIRECT_MESSAGES_SENT = Counter(
	"campusjam_direct_messages_sent_total",
	"Direct messages persisted",
)

DIRECT_MESSAGES_READ = Counter(
	"campusjam_direct_messages_read_total",
	"Direct messages flipped to read",
)

SESSION_MESSAGES_SENT = Counter(
	"campusjam_session_messages_sent_total",
	"Session messages persisted",
)

SESSION_MEMBERSHIP = Counter(
	"campusjam_session_membership_total",
	"Session attendee changes",
	["action"],
)

SESSION_TRANSITIONS = Counter(
	"campusjam_session_transitions_total",
	"Session status transitions",
	["status"],
)

SIDE_EFFECT_FAILURES = Counter(
	"campusjam_side_effect_failures_total",
	"Best-effort side effects that failed",
	["effect"],
)

REDIS_UP = Gauge("campusjam_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("campusjam_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("campusjam_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("campusjam_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_follow(action: str) -> None:
	FOLLOWS_TOTAL.labels(action=action).inc()


def inc_block(action: str) -> None:
	BLOCKS_TOTAL.labels(action=action).inc()


def inc_report() -> None:
	REPORTS_TOTAL.inc()


def inc_notification(kind: str) -> None:
	NOTIFICATIONS_TOTAL.labels(kind=kind).inc()


def inc_dm_send() -> None:
	DIRECT_MESSAGES_SENT.inc()


def inc_dm_read(count: int) -> None:
	if count > 0:
		DIRECT_MESSAGES_READ.inc(count)


def inc_session_message() -> None:
	SESSION_MESSAGES_SENT.inc()


def inc_session_membership(action: str) -> None:
	SESSION_MEMBERSHIP.labels(action=action).inc()


def inc_session_transition(status: str) -> None:
	SESSION_TRANSITIONS.labels(status=status).inc()


def inc_side_effect_failure(effect: str) -> None:
	SIDE_EFFECT_FAILURES.labels(effect=effect).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
