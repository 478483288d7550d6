from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

CourseStatus = Literal["active", "draft", "archived"]
CourseVisibility = Literal["public", "private"]


class CourseDayIn(BaseModel):
    day_number: int = Field(ge=1)
    title: Optional[str] = None
    module_1: Optional[str] = None
    module_2: Optional[str] = None
    module_3: Optional[str] = None
    media_link: Optional[str] = None


class CourseDayOut(CourseDayIn):
    id: int

    class Config:
        from_attributes = True


class CourseBase(BaseModel):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    visibility: CourseVisibility = "private"
    status: CourseStatus = "active"


class CourseCreate(CourseBase):
    days: List[CourseDayIn] = []


class CourseUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    visibility: Optional[CourseVisibility] = None
    status: Optional[CourseStatus] = None
    # when given, replaces all days of the course
    days: Optional[List[CourseDayIn]] = None


class CourseStatusUpdate(BaseModel):
    status: CourseStatus


class CourseOut(CourseBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    days: List[CourseDayOut] = []

    class Config:
        from_attributes = True
