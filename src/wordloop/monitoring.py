"""Monitoring configuration for wordloop."""
from prometheus_client import Counter, start_http_server

# Review metrics
reviews_graded = Counter(
    "wordloop_reviews_graded_total",
    "Total number of graded reviews",
    ["grade"],
)

# Reinforcement metrics
reinforcement_enqueued = Counter(
    "wordloop_reinforcement_enqueued_total",
    "Total number of words added to the reinforcement list",
)

reinforcement_answers = Counter(
    "wordloop_reinforcement_answers_total",
    "Total number of reinforcement answers",
    ["outcome"],
)

words_graduated = Counter(
    "wordloop_words_graduated_total",
    "Total number of words that left the reinforcement list",
)

degraded_questions = Counter(
    "wordloop_degraded_questions_total",
    "Total number of questions built with fewer options than ideal",
    ["mode"],
)

# Word management metrics
words_added = Counter(
    "wordloop_words_added_total",
    "Total number of words added",
)

words_deleted = Counter(
    "wordloop_words_deleted_total",
    "Total number of words deleted",
)

# Error metrics
storage_errors = Counter(
    "wordloop_storage_errors_total",
    "Total number of failed storage operations",
    ["operation"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
