"""Tests for LangSmith tracing setup."""
import os

import pytest

from clinicflow.tracing import setup_langsmith_tracing


@pytest.fixture
def tracing_env(monkeypatch):
    """Restore the LangChain variables the setup writes."""
    for name in ("LANGCHAIN_TRACING_V2", "LANGCHAIN_ENDPOINT", "LANGCHAIN_PROJECT", "LANGCHAIN_API_KEY"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


def test_disabled_by_default(tracing_env):
    assert setup_langsmith_tracing() is False
    assert "LANGCHAIN_PROJECT" not in os.environ


def test_requires_api_key(tracing_env):
    assert setup_langsmith_tracing(enabled=True) is False


def test_enabled_sets_project(tracing_env):
    tracing_env.setenv("LANGCHAIN_API_KEY", "ls-test")

    assert setup_langsmith_tracing(project_name="clinicflow-test", enabled=True) is True
    assert os.environ["LANGCHAIN_PROJECT"] == "clinicflow-test"
    assert os.environ["LANGCHAIN_TRACING_V2"] == "true"


def test_env_project_wins(tracing_env):
    tracing_env.setenv("LANGCHAIN_API_KEY", "ls-test")
    tracing_env.setenv("LANGCHAIN_PROJECT", "from-env")

    setup_langsmith_tracing(project_name="clinicflow-test", enabled=True)

    assert os.environ["LANGCHAIN_PROJECT"] == "from-env"
