"""Pydantic validation models for all user-facing data entry points."""

from __future__ import annotations

from datetime import date as dt_date
from datetime import time as dt_time
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from core.models import AttendanceStatus, EventType


def _required_text(value: Optional[str], message: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(message)
    return cleaned


def _optional_text(value: Optional[str]) -> Optional[str]:
    cleaned = (value or "").strip()
    return cleaned or None


class LoginInput(BaseModel):
    email: str = Field(default="", max_length=320)
    password: str = Field(default="", max_length=256)

    @field_validator("email")
    @classmethod
    def email_required(cls, v):
        return _required_text(v, "Please enter your email.")

    @field_validator("password")
    @classmethod
    def password_required(cls, v):
        if not v:
            raise ValueError("Please enter your password.")
        return v


class AnnouncementInput(BaseModel):
    title: str = Field(default="", max_length=200)
    body: str = Field(default="", max_length=10000)
    pinned: bool = False

    @field_validator("title")
    @classmethod
    def title_required(cls, v):
        return _required_text(v, "Please add a title.")

    @field_validator("body")
    @classmethod
    def body_required(cls, v):
        return _required_text(v, "Please add the announcement text.")


class PinInput(BaseModel):
    pinned: bool


class ScheduleEventInput(BaseModel):
    date: Optional[dt_date] = Field(default=None, validate_default=True)
    start_time: Optional[dt_time] = None
    type: EventType = EventType.PRACTICE
    title: str = Field(default="", max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("date")
    @classmethod
    def date_required(cls, v):
        if v is None:
            raise ValueError("Please choose a date.")
        return v

    @field_validator("start_time", mode="before")
    @classmethod
    def blank_time_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("title")
    @classmethod
    def title_required(cls, v):
        return _required_text(v, "Please add a title.")

    @field_validator("location", "notes")
    @classmethod
    def blank_is_none(cls, v):
        return _optional_text(v)


class AttendanceInput(BaseModel):
    status: AttendanceStatus
    note: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("note")
    @classmethod
    def blank_note_is_none(cls, v):
        return _optional_text(v)


class ReflectionInput(BaseModel):
    date: dt_date = Field(default_factory=dt_date.today)
    workout_summary: str = Field(default="", max_length=5000)
    effort: int = Field(default=7, ge=1, le=10)
    energy: int = Field(default=7, ge=1, le=10)

    @field_validator("workout_summary")
    @classmethod
    def summary_required(cls, v):
        return _required_text(v, "Please write a short workout summary.")
