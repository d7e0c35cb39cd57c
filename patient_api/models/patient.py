"""Pydantic models for patient records stored in DynamoDB.

Field names match the DynamoDB attribute names and the OpenSearch document
fields, so the same dict flows through both stores unchanged.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional

UPDATABLE_FIELDS = ("Name", "Address", "Conditions", "Allergies")


class PatientCreate(BaseModel):
    Name: str
    Address: str
    Conditions: List[str] = Field(default_factory=list)
    Allergies: List[str] = Field(default_factory=list)


class Patient(PatientCreate):
    PatientID: str


class PatientUpdate(BaseModel):
    Name: Optional[str] = None
    Address: Optional[str] = None
    Conditions: Optional[List[str]] = None
    Allergies: Optional[List[str]] = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, v):
        # DynamoDB cannot SET an attribute to null; omit the field instead
        if v is None:
            raise ValueError("field may be omitted but not null")
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ApiResponse(BaseModel):
    statusCode: str
    data: Any = None
    description: str
