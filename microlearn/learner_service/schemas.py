from pydantic import BaseModel, EmailStr
from typing import Literal, Optional
from datetime import datetime


class LearnerBase(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    status: Literal["active", "inactive"] = "active"


class LearnerCreate(LearnerBase):
    pass


class LearnerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    status: Optional[Literal["active", "inactive"]] = None


class LearnerOut(LearnerBase):
    id: int
    assigned_course_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignCourseRequest(BaseModel):
    course_id: int
    confirm_overwrite: bool = False


class LearnerImportResult(BaseModel):
    total: int
    imported: int
    failed: int
    skipped: int
