"""Prometheus counters for marketplace activity."""

from prometheus_client import Counter, Histogram

INSTALLER_SEARCHES = Counter(
    "instalatori_installer_searches_total",
    "Installer searches served",
    ["outcome"],
)

PROFILE_UPDATES = Counter(
    "instalatori_profile_updates_total",
    "Installer profile update attempts",
    ["outcome"],
)

PROFILE_UPDATE_DURATION = Histogram(
    "instalatori_profile_update_duration_seconds",
    "Duration of the atomic profile update unit",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

REVIEWS_WRITTEN = Counter(
    "instalatori_reviews_written_total",
    "Review mutations",
    ["action"],
)

FAVORITES_WRITTEN = Counter(
    "instalatori_favorites_written_total",
    "Favorite mutations",
    ["action"],
)
