from pydantic import BaseModel
from typing import List, Literal, Optional
from datetime import datetime

ProgressStatus = Literal["assigned", "started", "completed", "suspended"]
OutcomeStatus = Literal["assigned", "needs_confirmation", "failed", "skipped"]


class CourseProgressOut(BaseModel):
    id: int
    learner_id: Optional[int] = None
    learner_name: Optional[str] = None
    course_id: Optional[int] = None
    course_name: Optional[str] = None
    phone_number: str
    status: ProgressStatus
    current_day: int = 1
    progress_percent: float = 0.0
    started_at: Optional[datetime] = None
    last_module_completed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    reminder_count: int = 0
    last_reminder_sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BatchAssignRequest(BaseModel):
    course_id: int
    learner_ids: List[int]
    confirm_overwrite: bool = False


class LearnerOutcome(BaseModel):
    learner_id: int
    learner_name: Optional[str] = None
    status: OutcomeStatus
    stage: Optional[str] = None
    error: Optional[str] = None
    conflicting_courses: List[str] = []
    suspended_count: int = 0
    progress: Optional[CourseProgressOut] = None


class BatchResult(BaseModel):
    course_id: int
    status: Literal["done", "needs_confirmation", "failed"] = "done"
    outcomes: List[LearnerOutcome] = []

    @property
    def first_failure(self) -> Optional[LearnerOutcome]:
        return next((o for o in self.outcomes if o.status == "failed"), None)

    @property
    def needs_confirmation_ids(self) -> List[int]:
        return [o.learner_id for o in self.outcomes if o.status == "needs_confirmation"]


class CourseStats(BaseModel):
    course_id: Optional[int] = None
    course_name: Optional[str] = None
    learners: int
    completed: int
    completion_rate: float
