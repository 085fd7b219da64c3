from datetime import date
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Chapter(BaseModel):
    """One chapter of a work, as shown in the full-work view.

    summary, notes, content and end_notes are HTML fragments.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1, description="Absolute chapter URL")
    summary: Optional[str] = None
    notes: Optional[str] = Field(None, description="Notes shown before the chapter body")
    content: str = Field(..., min_length=1)
    end_notes: Optional[str] = Field(None, description="Notes shown after the chapter body")


class Work(BaseModel):
    model_config = ConfigDict(frozen=True)

    work_id: int = Field(..., ge=0)
    title: str = Field(..., min_length=1)
    summary: Optional[str] = None
    notes: Optional[str] = None
    end_notes: Optional[str] = None
    publish_date: date
    update_date: date
    chapters: Tuple[Chapter, ...] = Field(default=(), description="Chapters in source order")
