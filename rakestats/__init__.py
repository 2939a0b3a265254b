"""
Per-player bet/win/rake statistics over month-partitioned poker hand history.
"""
from datetime import datetime
from typing import Mapping, Optional, Sequence

__version__ = "1.0.0"

__all__ = [
    "run_user_stats",
    "load_config",
]


# Lazy imports keep ``import rakestats`` free of the database driver
def run_user_stats(
    config,
    store,
    start: datetime,
    end: datetime,
    user_ids: Optional[Sequence[int]] = None,
    title: Optional[str] = None,
):
    """
    Build the ranked per-player report for ``[start, end)``.

    Args:
        config: ``ReportConfig`` for the run
        store: ``HandStore`` to read partitions from
        start: Inclusive start instant (UTC)
        end: Exclusive end instant (UTC)
        user_ids: Players to report on (defaults to the configured roster)
        title: Report title

    Returns:
        ``UserStatsReport``
    """
    from rakestats.pipeline.runner import run_user_stats as _run
    return _run(config, store, start, end, user_ids=user_ids, title=title)


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None):
    """Load a ``ReportConfig`` from an optional YAML file and environment overrides."""
    from rakestats.config import load_config as _load
    return _load(path, env)
