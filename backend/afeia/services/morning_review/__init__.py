from .trends import calculate_weekly_stats, calculate_device_stats, get_trend
from .scoring import calculate_attention_score, classify_client, get_attention_level
from .signals import identify_primary_signal
from .actions import generate_suggested_actions
from .caseload import (
    build_attention_queue,
    build_caseload_summaries,
    compute_global_metrics,
    summarize_client,
)
from .review_session import (
    GuidedReview,
    ReviewSessionState,
    ReviewStatus,
    next_client,
    previous_client,
    record_action,
    start_review,
)

__all__ = [
    "calculate_weekly_stats",
    "calculate_device_stats",
    "get_trend",
    "calculate_attention_score",
    "classify_client",
    "get_attention_level",
    "identify_primary_signal",
    "generate_suggested_actions",
    "build_attention_queue",
    "build_caseload_summaries",
    "compute_global_metrics",
    "summarize_client",
    "GuidedReview",
    "ReviewSessionState",
    "ReviewStatus",
    "next_client",
    "previous_client",
    "record_action",
    "start_review",
]
