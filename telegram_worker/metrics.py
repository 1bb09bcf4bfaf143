import logging
from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

ALERTS_SENT = Counter(
    "relay_alerts_sent_total",
    "Alerts pushed to the chat",
    ["source"]
)

POLL_FAILURES = Counter(
    "relay_poll_failures_total",
    "Alert ticks skipped because the backend could not be read",
    ["source"]
)

POLL_LATENCY = Histogram(
    "relay_poll_duration_seconds",
    "Duration of one alert tick",
    ["source"]
)

UPDATES_PROCESSED = Counter(
    "relay_updates_total",
    "Chat updates handled by the worker",
    ["kind"]
)

def start_metrics_server(port):
    if not port:
        logger.info("METRICS_PORT not set, metrics endpoint disabled")
        return
    start_http_server(port)
    logger.info(f"📈 Metrics exposed on :{port}/metrics")
