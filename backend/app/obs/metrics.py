"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"cc_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"cc_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

QUEUES_CREATED = Counter(
	"cc_group_queues_created_total",
	"Group chat queues created",
	["intention"],
)

QUEUE_JOINS = Counter(
	"cc_group_queue_joins_total",
	"Join attempts against group chat queues",
	["result"],
)

QUEUE_LEAVES = Counter(
	"cc_group_queue_leaves_total",
	"Members leaving group chat queues",
)

QUEUES_PROMOTED = Counter(
	"cc_group_queues_promoted_total",
	"Queues promoted into group chats",
	["intention"],
)

QUEUES_CANCELLED = Counter(
	"cc_group_queues_cancelled_total",
	"Queues removed without promotion",
	["reason"],
)

QUEUE_FILL_SECONDS = Histogram(
	"cc_group_queue_fill_seconds",
	"Time from queue creation to promotion",
	buckets=(30, 60, 300, 900, 3600, 21600, 86400),
)

CHAT_MESSAGES = Counter(
	"cc_chat_messages_total",
	"Chat messages posted",
	["kind"],
)

DIRECT_CHATS_CREATED = Counter(
	"cc_direct_chats_created_total",
	"Direct chats opened",
)

RATE_LIMITED_EVENTS = Counter(
	"cc_rate_limited_total",
	"Requests rejected by rate limits",
	["kind"],
)

REDIS_UP = Gauge("cc_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("cc_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("cc_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("cc_postgres_latency_seconds", "Postgres ping latency (seconds)")


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_queue_created(intention: str) -> None:
	QUEUES_CREATED.labels(intention=intention).inc()


def inc_queue_join(result: str) -> None:
	QUEUE_JOINS.labels(result=result).inc()


def inc_queue_leave() -> None:
	QUEUE_LEAVES.inc()


def inc_queue_promoted(intention: str, *, waited_seconds: float | None = None) -> None:
	QUEUES_PROMOTED.labels(intention=intention).inc()
	if waited_seconds is not None and waited_seconds >= 0:
		QUEUE_FILL_SECONDS.observe(waited_seconds)


def inc_queue_cancelled(reason: str) -> None:
	QUEUES_CANCELLED.labels(reason=reason).inc()


def inc_chat_message(kind: str) -> None:
	CHAT_MESSAGES.labels(kind=kind).inc()


def inc_direct_chat_created() -> None:
	DIRECT_CHATS_CREATED.inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
