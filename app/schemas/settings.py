from pydantic import BaseModel, Field


class OperatingHours(BaseModel):
    opening_hour: int = Field(ge=0, le=24)
    closing_hour: int = Field(ge=0, le=24)
