import uuid
from datetime import date
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, model_validator

from .common import UtcDateTime


class FridgeUnitBase(BaseModel):
    name: str
    location: Optional[str] = None
    min_temp: float = 2.0
    max_temp: float = 8.0
    is_active: bool = True


class FridgeUnitCreate(FridgeUnitBase):
    pass


class FridgeUnitUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.min_temp is not None and self.max_temp is not None and self.min_temp >= self.max_temp:
            raise ValueError("min_temp must be below max_temp")
        return self


class FridgeUnit(FridgeUnitBase):
    id: uuid.UUID
    practice_id: uuid.UUID
    created_at: UtcDateTime
    updated_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class FridgeReadingCreate(BaseModel):
    fridge_id: uuid.UUID
    reading_date: UtcDateTime
    log_time: Optional[Literal["AM", "PM"]] = None
    temperature: float
    action_taken: Optional[str] = None


class FridgeReadingUpdate(BaseModel):
    action_taken: Optional[str] = None
    outcome: Optional[str] = None


class FridgeReading(BaseModel):
    id: uuid.UUID
    practice_id: uuid.UUID
    fridge_id: uuid.UUID
    reading_date: UtcDateTime
    log_time: Optional[str] = None
    temperature: float
    recorded_by: Optional[uuid.UUID] = None
    is_out_of_range: bool
    action_taken: Optional[str] = None
    outcome: Optional[str] = None
    created_at: UtcDateTime
    model_config = ConfigDict(from_attributes=True)


class DailyFridgeCompliance(BaseModel):
    date: date
    total: int
    compliant: int
    breaches: int
    compliance_rate: float


class FridgeStats(BaseModel):
    fridge_id: uuid.UUID
    fridge_name: str
    total_logs: int
    breaches: int
    compliance_rate: float
    avg_temperature: Optional[float] = None


class FridgeStatsResponse(BaseModel):
    days: int
    daily: List[DailyFridgeCompliance]
    fridges: List[FridgeStats]
