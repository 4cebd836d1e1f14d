"""Lazy-loading registry of local transformers pipelines.

Each (task, model) pair is loaded on first use and kept for the life of the
process.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_registry: dict[tuple[str, str], Any] = {}

# Extra pipeline kwargs per task
_TASK_OPTIONS: dict[str, dict[str, Any]] = {
    "token-classification": {"aggregation_strategy": "simple"},
    "text-classification": {"top_k": None, "truncation": True},
}


def _create_pipeline(task: str, model: str) -> Any:
    """Factory: build a transformers pipeline with deferred import."""
    if task not in _TASK_OPTIONS:
        raise ValueError(f"Unknown pipeline task: {task}")
    from transformers import pipeline

    return pipeline(task, model=model, **_TASK_OPTIONS[task])


def get_pipeline(task: str, model: str) -> Any:
    """Get a pipeline by task and model, creating it on first access."""
    key = (task, model)
    if key not in _registry:
        logger.info("Loading %s model: %s", task, model)
        _registry[key] = _create_pipeline(task, model)
        logger.info("Model loaded: %s", model)
    return _registry[key]


def clear() -> None:
    """Unload all pipelines. Useful for testing."""
    _registry.clear()
