"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter

member_additions_total = Counter(
    "eventnet_member_additions_total",
    "Membership add attempts by intake source and outcome",
    ["source", "outcome"],
)

profile_index_total = Counter(
    "eventnet_profile_index_total",
    "Vector index writes by category and outcome",
    ["category", "outcome"],
)

assistant_queries_total = Counter(
    "eventnet_assistant_queries_total",
    "Assistant questions by classified intent and answer path",
    ["intent", "path"],
)


def observe_member_addition(source: str, outcome: str) -> None:
    member_additions_total.labels(source=source, outcome=outcome).inc()


def observe_index_write(category: str, outcome: str) -> None:
    profile_index_total.labels(category=category, outcome=outcome).inc()


def observe_assistant_query(intent: str, path: str) -> None:
    assistant_queries_total.labels(intent=intent, path=path).inc()
