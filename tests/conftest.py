from pathlib import Path
import sys

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import config


@pytest.fixture(autouse=True)
def _ensure_test_openai_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide a deterministic OpenAI API key during tests unless overridden."""

    monkeypatch.setattr(config, "OPENAI_API_KEY", "test-key", raising=False)
    yield


@pytest.fixture(autouse=True)
def _no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep backoff delays at zero so retry paths run instantly."""

    monkeypatch.setattr(config, "RETRY_BASE_DELAYS_MS", (0,), raising=False)
    yield
