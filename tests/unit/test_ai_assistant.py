import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from compliance.services.ai_assistant import (
    AiAssistantService,
    AiProviderError,
    AiUnavailableError,
    regulator_for,
)


@pytest.fixture
def mock_genai():
    with patch("compliance.services.ai_assistant.genai") as genai:
        client = MagicMock()
        client.models.generate_content.return_value = SimpleNamespace(text="  Check the cold chain log.  ")
        genai.Client.return_value = client
        yield genai


@pytest.mark.parametrize("country,regulator", [
    ("wales", "HIW"),
    ("Scotland", "HIS"),
    ("england", "CQC"),
    (None, "CQC"),
])
def test_regulator_for(country, regulator):
    assert regulator_for(country) == regulator


def test_unavailable_without_key(monkeypatch, mock_genai):
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    service = AiAssistantService()
    assert service.is_available is False
    with pytest.raises(AiUnavailableError):
        service.step_help("How do I log this?")
    mock_genai.Client.assert_not_called()


def test_unavailable_when_flag_disabled(monkeypatch, mock_genai):
    monkeypatch.setenv("AI_FEATURES_ENABLED", "false")
    service = AiAssistantService(llm_api_key="test-key")
    with pytest.raises(AiUnavailableError):
        service.suggest_improvements("IPC", 60, 90, 30, {})


def test_step_help_maps_history_roles(mock_genai):
    service = AiAssistantService(llm_api_key="test-key")

    result = service.step_help(
        "What evidence do I need?",
        process_name="Fridge Temperature Check",
        step_title="Record reading",
        conversation_history=[
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello, how can I help?"},
            {"role": "user", "content": ""},
        ],
    )

    assert result == {"response": "Check the cold chain log.", "assistant_type": "gemini"}
    mock_genai.Client.assert_called_once_with(api_key="test-key")
    kwargs = mock_genai.Client.return_value.models.generate_content.call_args.kwargs
    assert [turn["role"] for turn in kwargs["contents"]] == ["user", "model", "user"]
    assert kwargs["contents"][-1]["parts"] == [{"text": "What evidence do I need?"}]
    system = kwargs["config"]["system_instruction"]
    assert "Process: Fridge Temperature Check" in system
    assert "Step Description: No description available" in system
    assert kwargs["config"]["max_output_tokens"] == 800


def test_suggest_improvements_prompt(mock_genai):
    service = AiAssistantService(llm_api_key="test-key")

    result = service.suggest_improvements(
        "Infection Control", 62, 90, 28, {"audits_completed": 1}, country="wales",
    )

    assert result == {"tips": "Check the cold chain log."}
    kwargs = mock_genai.Client.return_value.models.generate_content.call_args.kwargs
    assert "A practice in wales has an audit readiness score of 62/100 for Infection Control" in kwargs["contents"]
    assert '{"audits_completed": 1}' in kwargs["contents"]
    assert "(HIW)" in kwargs["contents"]
    assert kwargs["config"]["max_output_tokens"] == 150


def test_provider_failure_raises(mock_genai):
    mock_genai.Client.return_value.models.generate_content.side_effect = RuntimeError("quota exceeded")
    service = AiAssistantService(llm_api_key="test-key")
    with pytest.raises(AiProviderError):
        service.step_help("help")


def test_empty_response_raises(mock_genai):
    mock_genai.Client.return_value.models.generate_content.return_value = SimpleNamespace(text="   ")
    service = AiAssistantService(llm_api_key="test-key")
    with pytest.raises(AiProviderError):
        service.step_help("help")


THEMES_JSON = json.dumps({
    "themes": [{"name": "Appointment access", "count": 2, "severity_level": "medium"}],
    "sentiment": {"positive": 0, "neutral": 25, "negative": 75},
    "insights": "Most complaints concern getting through on the phone.",
    "recommendations": ["Add a call-back option"],
})


def test_analyze_complaint_themes(mock_genai):
    mock_genai.Client.return_value.models.generate_content.return_value = SimpleNamespace(text=THEMES_JSON)
    service = AiAssistantService(llm_api_key="test-key")

    result = service.analyze_complaint_themes([
        {"channel": "phone", "status": "open", "description": "x" * 800},
        {"channel": "email", "status": "closed", "description": "Could not book"},
    ])

    assert result["themes"] == [{"name": "Appointment access", "count": 2, "severity_level": "medium"}]
    assert result["sentiment"] == {"positive": 0, "neutral": 25, "negative": 75}
    assert result["recommendations"] == ["Add a call-back option"]
    assert result["complaints_analyzed"] == 2
    kwargs = mock_genai.Client.return_value.models.generate_content.call_args.kwargs
    assert "Analyze these 2 complaints" in kwargs["contents"]
    assert "x" * 500 in kwargs["contents"]
    assert "x" * 501 not in kwargs["contents"]
    assert kwargs["config"]["response_mime_type"] == "application/json"


@pytest.mark.parametrize("text", [
    "Themes: access and attitude",
    json.dumps({"themes": [{"name": "Access", "count": 1, "severity_level": "extreme"}], "insights": "-"}),
])
def test_analyze_complaint_themes_rejects_unusable_output(mock_genai, text):
    mock_genai.Client.return_value.models.generate_content.return_value = SimpleNamespace(text=text)
    service = AiAssistantService(llm_api_key="test-key")
    with pytest.raises(AiProviderError):
        service.analyze_complaint_themes([{"channel": "phone", "status": "open", "description": "Rude"}])
