from datetime import date
from typing import Optional, Any, List, Literal
from pydantic import BaseModel, Field, model_validator


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class StepHelpRequest(BaseModel):
    message: str = Field(min_length=1)
    process_name: Optional[str] = None
    step_title: Optional[str] = None
    step_description: Optional[str] = None
    conversation_history: List[ConversationTurn] = []


class StepHelpResponse(BaseModel):
    response: str
    assistant_type: str = "gemini"


class SuggestImprovementsRequest(BaseModel):
    section: str
    score: float
    target: float
    gap: float
    contributors: Any = None
    country: Optional[str] = None


class SuggestImprovementsResponse(BaseModel):
    tips: str


class ComplaintThemesRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class ComplaintTheme(BaseModel):
    name: str
    count: int
    severity_level: Literal["low", "medium", "high"]


class ComplaintSentiment(BaseModel):
    positive: float = 0
    neutral: float = 0
    negative: float = 0


class ComplaintThemeAnalysis(BaseModel):
    themes: List[ComplaintTheme] = []
    sentiment: ComplaintSentiment = ComplaintSentiment()
    insights: str
    recommendations: List[str] = []
    complaints_analyzed: int = 0
