"""Pydantic schemas for Parent Copilot.

Request bodies use camelCase keys on the wire (``dateOfBirth``, ``childId``)
and snake_case attributes in Python. Dump with ``by_alias=True`` to get the
stored document form.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TIME_OF_DAY_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'

Gender = Literal['male', 'female', 'other']
HealthStatus = Literal['scheduled', 'completed', 'cancelled']
Frequency = Literal['once', 'daily', 'weekly', 'monthly']


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
    )

    def to_document(self) -> dict:
        """Full document form, defaults included."""
        return self.model_dump(by_alias=True, mode='json')

    def to_updates(self) -> dict:
        """Only the fields present in the request, for partial updates."""
        return self.model_dump(by_alias=True, mode='json', exclude_unset=True)


# --- Parents ---

class ParentPreferences(CamelModel):
    notifications: bool = True
    reminder_frequency: str = 'daily'
    language: str = 'en'


class ParentCreate(CamelModel):
    """Schema for creating a parent."""

    name: str = Field(..., min_length=1, description="Parent's name")
    email: str = Field(..., min_length=1, description="Contact email")
    phone: str = Field(..., min_length=1, description="Contact phone number")
    preferences: ParentPreferences = Field(default_factory=ParentPreferences)


class ParentUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    preferences: Optional[ParentPreferences] = None


# --- Children ---

class MedicalHistory(CamelModel):
    allergies: List[str] = Field(default_factory=list)
    chronic_conditions: List[str] = Field(default_factory=list)
    medications: List[str] = Field(default_factory=list)


class PhysicalMilestones(CamelModel):
    height: float = 0
    weight: float = 0
    last_updated: Optional[str] = None


class CognitiveMilestones(CamelModel):
    milestones: List[str] = Field(default_factory=list)
    last_updated: Optional[str] = None


class DevelopmentMilestones(CamelModel):
    physical: PhysicalMilestones = Field(default_factory=PhysicalMilestones)
    cognitive: CognitiveMilestones = Field(default_factory=CognitiveMilestones)


class ChildCreate(CamelModel):
    """Schema for creating a child profile.

    ``parentId`` is accepted but not checked against stored parents.
    """

    name: str = Field(..., min_length=1, description="Child's name")
    date_of_birth: date = Field(..., description="Date of birth (YYYY-MM-DD)")
    gender: Gender = Field(..., description="male, female or other")
    parent_id: Optional[str] = Field(None, description="Owning parent ID")
    medical_history: Optional[MedicalHistory] = None
    development_milestones: Optional[DevelopmentMilestones] = None


class ChildUpdate(CamelModel):
    """All fields optional; only provided fields are merged."""

    name: Optional[str] = Field(None, min_length=1)
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    parent_id: Optional[str] = None
    medical_history: Optional[MedicalHistory] = None
    development_milestones: Optional[DevelopmentMilestones] = None


# --- Health records ---

class HealthRecordCreate(CamelModel):
    child_id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="e.g. checkup, vaccination")
    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1, description="ISO date or datetime")
    status: HealthStatus = 'scheduled'
    notes: str = ''


class HealthRecordUpdate(CamelModel):
    child_id: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    date: Optional[str] = Field(None, min_length=1)
    status: Optional[HealthStatus] = None
    notes: Optional[str] = None
    completed_at: Optional[str] = None


# --- Reminders ---

class ReminderCreate(CamelModel):
    """Schema for creating a reminder.

    A reminder without ``date`` recurs: it is considered every day at ``time``.
    """

    child_id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="e.g. medication, feeding")
    title: str = Field(..., min_length=1)
    time: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN, description="Time of day, HH:MM")
    date: Optional[str] = Field(None, description="ISO date or datetime")
    frequency: Frequency = 'once'
    notes: str = ''


class ReminderUpdate(CamelModel):
    child_id: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    time: Optional[str] = Field(None, pattern=TIME_OF_DAY_PATTERN)
    date: Optional[str] = None
    frequency: Optional[Frequency] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    last_triggered: Optional[str] = None


# --- Care plans ---

class CareTask(CamelModel):
    id: str
    title: str
    completed: bool = False
    due_date: Optional[str] = None
    completed_at: Optional[str] = None


class CarePlanCreate(CamelModel):
    child_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    specific_needs: Optional[str] = Field(None, description="Passed to the AI care plan prompt")


class CarePlanUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    tasks: Optional[List[CareTask]] = None
    ai_generated: Optional[bool] = None


class TaskCreate(CamelModel):
    title: Optional[str] = None
    due_date: Optional[str] = None


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    completed: Optional[bool] = None
    due_date: Optional[str] = None

    @field_validator('title', 'completed')
    @classmethod
    def not_null(cls, value):
        # Omit a field to leave it unchanged; an explicit null is rejected
        if value is None:
            raise ValueError("must not be null")
        return value


class RegenerateRequest(CamelModel):
    specific_needs: Optional[str] = None


# --- AI ---

class ContextRequest(CamelModel):
    context: Optional[str] = None


class TipRequest(CamelModel):
    child_id: Optional[str] = None
    context: Optional[str] = None


class ChildRequest(CamelModel):
    child_id: Optional[str] = None


class CarePlanRequest(CamelModel):
    child_id: Optional[str] = None
    specific_needs: Optional[str] = None


class ChatRequest(CamelModel):
    child_id: Optional[str] = None
    message: Optional[str] = None
    context: Optional[str] = None
