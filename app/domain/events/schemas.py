from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from datetime import datetime
from app.domain.events.models import EventStatus, PeriodStatus
from app.core.text_utils import strip_text


class EventReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    organizer_id: int
    title: str
    status: EventStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None


class EventPeriodCreateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    name: str = Field(min_length=1, max_length=127)
    start_at: datetime
    end_at: datetime
    status: PeriodStatus = PeriodStatus.UPCOMING

    _strip_name = field_validator("name", mode="before")(strip_text)

    @model_validator(mode="after")
    def _check_time_window(self):
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class EventPeriodReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    id: int
    event_id: int
    name: str
    start_at: datetime
    end_at: datetime
    status: PeriodStatus
    created_at: datetime
    deleted_at: datetime | None = None


class CascadeSummaryDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    periods: int = 0
    ticket_types: int = 0
    tickets: int = 0


class EventDeletedDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    event: EventReadDTO
    cascade: CascadeSummaryDTO


class EventPeriodDeletedDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    period: EventPeriodReadDTO
    cascade: CascadeSummaryDTO
