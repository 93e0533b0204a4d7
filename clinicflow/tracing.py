"""LangSmith tracing configuration for the text-generation helpers."""
import os
from typing import Optional

from clinicflow.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PROJECT = "clinicflow-reports"


def setup_langsmith_tracing(
    project_name: str = DEFAULT_PROJECT,
    enabled: Optional[bool] = None
) -> bool:
    """
    Configure LangSmith tracing.

    Args:
        project_name: LangSmith project name
        enabled: Override enable/disable (defaults to env var)

    Returns:
        True if tracing was switched on

    Environment Variables:
        LANGCHAIN_TRACING_V2: Set to "true" to enable
        LANGCHAIN_API_KEY: Your LangSmith API key
        LANGCHAIN_PROJECT: Project name (overrides parameter)
    """
    if enabled is None:
        enabled = os.getenv("LANGCHAIN_TRACING_V2", "false").lower() == "true"

    if not enabled:
        logger.info("langsmith_tracing_disabled")
        return False

    if not os.getenv("LANGCHAIN_API_KEY"):
        logger.warning("langsmith_tracing_disabled", reason="LANGCHAIN_API_KEY not set")
        return False

    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    os.environ["LANGCHAIN_ENDPOINT"] = "https://api.smith.langchain.com"
    os.environ["LANGCHAIN_PROJECT"] = os.getenv("LANGCHAIN_PROJECT", project_name)

    logger.info("langsmith_tracing_enabled", project=os.environ["LANGCHAIN_PROJECT"])
    return True
