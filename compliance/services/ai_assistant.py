"""
AI assistance for practice staff, backed by Google Gemini.

A chat assistant scoped to the process step a user is working on, short
improvement tips for a weak audit-readiness section, and theme analysis
over a period of patient complaints.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from google import genai
from pydantic import ValidationError

from compliance.db.schemas import ComplaintThemeAnalysis
from compliance.utils.runtime import ai_assistance_enabled

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash"

STEP_HELP_SYSTEM_PROMPT = """You are a specialized GP Practice Process Assistant helping with compliance and operational processes.

Current Context:
- Process: {process_name}
- Step: {step_title}
- Step Description: {step_description}

You are helping a GP practice team member complete this specific step. Provide clear, actionable guidance for:
- How to properly complete this step
- What evidence might be needed
- Common issues and solutions
- Best practices for compliance
- Any regulatory requirements
- Specific forms or documentation needed

Keep responses focused, practical, and specific to UK GP practice compliance. If asked about unrelated topics, redirect back to the current process step."""

SUGGESTIONS_SYSTEM_PROMPT = (
    "You are a concise UK healthcare audit consultant. "
    "Provide exactly 2 short, practical tips (one sentence each)."
)

SUGGESTIONS_PROMPT = """You are a UK GP practice audit expert. A practice in {country} has an audit readiness score of {score}/100 for {section}, with a target of {target}/100 (gap: {gap} points).

Current metrics: {contributors}

Provide exactly 2 short, actionable improvement tips (one sentence each) to close this gap. Be specific to UK GP audit requirements ({regulator})."""


COMPLAINT_THEMES_SYSTEM_PROMPT = """You are an NHS complaints analysis expert. Analyze the provided complaints data to identify:
1. Common themes and patterns across complaints
2. Overall sentiment (positive, neutral, negative percentages)
3. Key insights about recurring issues
4. Actionable recommendations for the practice

Respond with JSON only: {"themes": [{"name": str, "count": int, "severity_level": "low"|"medium"|"high"}], "sentiment": {"positive": number, "neutral": number, "negative": number}, "insights": str, "recommendations": [str]}."""

COMPLAINT_THEMES_PROMPT = """Analyze these {count} complaints from an NHS GP practice:

{complaints}

Identify the top 3-5 themes, calculate sentiment distribution, provide insights about patterns, and give 3-5 actionable recommendations."""

COMPLAINT_DESCRIPTION_LIMIT = 500

class AiUnavailableError(Exception):
    """AI features are disabled or no API key is configured."""


class AiProviderError(Exception):
    """The model call failed or returned nothing usable."""


def regulator_for(country: Optional[str]) -> str:
    normalized = (country or "").strip().lower()
    if normalized == "wales":
        return "HIW"
    if normalized == "scotland":
        return "HIS"
    return "CQC"


class AiAssistantService:
    """Thin wrapper around the Gemini client."""

    def __init__(self, llm_api_key: Optional[str] = None):
        self.llm_api_key = llm_api_key or os.getenv("LLM_API_KEY")
        self.llm_model_name = os.getenv("LLM_MODEL_NAME", DEFAULT_MODEL_NAME)

    @property
    def is_available(self) -> bool:
        return bool(self.llm_api_key) and ai_assistance_enabled()

    def _generate(
        self,
        contents: Any,
        system_instruction: str,
        temperature: float,
        max_output_tokens: int,
        response_mime_type: Optional[str] = None,
    ) -> str:
        if not self.is_available:
            raise AiUnavailableError("AI assistance is not configured")
        try:
            client = genai.Client(api_key=self.llm_api_key)
            response = client.models.generate_content(
                model=self.llm_model_name,
                contents=contents,
                config={
                    "system_instruction": system_instruction,
                    "temperature": temperature,
                    "max_output_tokens": max_output_tokens,
                    **({"response_mime_type": response_mime_type} if response_mime_type else {}),
                },
            )
        except Exception as e:
            logger.exception("ai_generate_error: model=%s", self.llm_model_name)
            raise AiProviderError(str(e)) from e

        text = (response.text or "").strip() if response is not None else ""
        if not text:
            raise AiProviderError("Empty response from model")
        return text

    def step_help(
        self,
        message: str,
        process_name: Optional[str] = None,
        step_title: Optional[str] = None,
        step_description: Optional[str] = None,
        conversation_history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        system_instruction = STEP_HELP_SYSTEM_PROMPT.format(
            process_name=process_name or "Unknown Process",
            step_title=step_title or "Unknown Step",
            step_description=step_description or "No description available",
        )
        contents = []
        for turn in conversation_history or []:
            content = turn.get("content")
            if not content:
                continue
            role = "model" if turn.get("role") == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": content}]})
        contents.append({"role": "user", "parts": [{"text": message}]})

        logger.info(
            "ai_step_help: process=%s step=%s history=%s",
            process_name, step_title, len(contents) - 1,
        )
        text = self._generate(contents, system_instruction, temperature=0.7, max_output_tokens=800)
        return {"response": text, "assistant_type": "gemini"}

    def suggest_improvements(
        self,
        section: str,
        score: float,
        target: float,
        gap: float,
        contributors: Any,
        country: Optional[str] = None,
    ) -> Dict[str, Any]:
        prompt = SUGGESTIONS_PROMPT.format(
            country=country,
            score=score,
            section=section,
            target=target,
            gap=gap,
            contributors=json.dumps(contributors, default=str),
            regulator=regulator_for(country),
        )
        logger.info("ai_suggest_improvements: section=%s score=%s target=%s", section, score, target)
        tips = self._generate(prompt, SUGGESTIONS_SYSTEM_PROMPT, temperature=0.7, max_output_tokens=150)
        return {"tips": tips}


    def analyze_complaint_themes(self, complaints: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Group complaints into themes with sentiment, insights and recommendations.

        Each complaint is a dict with ``channel``, ``status`` and ``description``;
        descriptions are cut to 500 characters before they are sent.
        """
        summary = [
            {**complaint, "description": (complaint.get("description") or "")[:COMPLAINT_DESCRIPTION_LIMIT]}
            for complaint in complaints
        ]
        prompt = COMPLAINT_THEMES_PROMPT.format(count=len(summary), complaints=json.dumps(summary, indent=2, default=str))
        logger.info("ai_complaint_themes: complaints=%s", len(summary))
        raw = self._generate(
            prompt,
            COMPLAINT_THEMES_SYSTEM_PROMPT,
            temperature=0.3,
            max_output_tokens=1500,
            response_mime_type="application/json",
        )
        try:
            analysis = ComplaintThemeAnalysis.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("ai_complaint_themes_unparseable: %s", e)
            raise AiProviderError("Model returned an unusable analysis") from e
        analysis.complaints_analyzed = len(summary)
        return analysis.model_dump()


def get_ai_assistant_service(llm_api_key: Optional[str] = None) -> AiAssistantService:
    return AiAssistantService(llm_api_key)
