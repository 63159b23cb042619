import pytest

import config
from config import StructuredOutputMode


def test_parse_delay_list() -> None:
    default = (1000, 2000)
    assert config._parse_delay_list(None, default=default) == default
    assert config._parse_delay_list("500, 750,", default=default) == (500, 750)
    with pytest.warns(RuntimeWarning):
        assert config._parse_delay_list("500,soon", default=default) == default
    assert config._parse_delay_list("-1", default=default) == default


def test_parse_positive_int_env() -> None:
    assert config._parse_positive_int_env("5", env_var="RETRY_MAX_ATTEMPTS", default=3) == 5
    assert config._parse_positive_int_env("", env_var="RETRY_MAX_ATTEMPTS", default=3) == 3
    with pytest.warns(RuntimeWarning):
        assert config._parse_positive_int_env("0", env_var="RETRY_MAX_ATTEMPTS", default=3) == 3
    with pytest.warns(RuntimeWarning):
        assert config._parse_positive_int_env("many", env_var="RETRY_MAX_ATTEMPTS", default=3) == 3


def test_structured_mode_coercion() -> None:
    assert config._coerce_structured_mode(None) is StructuredOutputMode.NATIVE
    assert config._coerce_structured_mode("Instruction") is StructuredOutputMode.INSTRUCTION
    with pytest.warns(RuntimeWarning):
        assert config._coerce_structured_mode("xml") is StructuredOutputMode.NATIVE


def test_timeout_normalisation() -> None:
    assert config._normalise_timeout("30") == 30.0
    with pytest.warns(RuntimeWarning):
        assert config._normalise_timeout("-5", default=120.0) == 120.0


def test_get_openai_api_key_reads_environment(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "  env-key ")
    assert config.get_openai_api_key() == "env-key"

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with caplog.at_level("INFO"):
        assert config.get_openai_api_key() == ""
    assert "OPENAI_API_KEY not configured" in caplog.text


def test_is_llm_enabled_follows_key(monkeypatch: pytest.MonkeyPatch) -> None:
    assert config.is_llm_enabled() is True
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    assert config.is_llm_enabled() is False


def test_retry_jitter_must_stay_below_one() -> None:
    assert config._parse_float_env("0.3", env_var="RETRY_JITTER", default=0.2, upper=1.0) == 0.3
    with pytest.warns(RuntimeWarning, match="RETRY_JITTER must be below"):
        assert config._parse_float_env("1", env_var="RETRY_JITTER", default=0.2, upper=1.0) == 0.2
    with pytest.warns(RuntimeWarning):
        assert config._parse_float_env("2.5", env_var="RETRY_JITTER", default=0.2, upper=1.0) == 0.2
    assert config._parse_float_env("2.5", env_var="FALLBACK_TEMPERATURE", default=0.8) == 2.5
