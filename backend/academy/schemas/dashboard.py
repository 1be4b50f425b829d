"""Dashboard Schemas — admin summary counters."""

from pydantic import BaseModel, Field


class DashboardSummaryResponse(BaseModel):
    total_enrollments: int = Field(ge=0)
    pending_verifications: int = Field(ge=0)
    verified_enrollments: int = Field(ge=0)
    active_batches: int = Field(ge=0)
