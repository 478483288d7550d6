from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Numeric, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from .database import Base


class Learner(Base):
    __tablename__ = "learners"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)  # raw, as entered by the operator
    status = Column(String(20), nullable=False, default="active")  # 'active' | 'inactive'
    assigned_course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now())

    assigned_course = relationship("Course")


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    language = Column(String(50), nullable=True)
    visibility = Column(String(20), nullable=False, default="private")  # 'public' | 'private'
    status = Column(String(20), nullable=False, default="active")  # 'active' | 'draft' | 'archived'
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now())

    days = relationship(
        "CourseDay",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseDay.day_number",
    )


class CourseDay(Base):
    __tablename__ = "course_days"
    __table_args__ = (UniqueConstraint("course_id", "day_number"),)

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    day_number = Column(Integer, nullable=False)
    title = Column(String(200), nullable=True)
    module_1 = Column(Text, nullable=True)
    module_2 = Column(Text, nullable=True)
    module_3 = Column(Text, nullable=True)
    media_link = Column(Text, nullable=True)

    course = relationship("Course", back_populates="days")


class CourseProgress(Base):
    __tablename__ = "course_progress"

    id = Column(Integer, primary_key=True, index=True)
    learner_id = Column(Integer, ForeignKey("learners.id", ondelete="SET NULL"), nullable=True)
    learner_name = Column(String(200), nullable=True)  # snapshot at assignment time
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    course_name = Column(String(200), nullable=True)  # snapshot at assignment time
    phone_number = Column(String(20), nullable=False, index=True)  # canonical form
    status = Column(String(20), nullable=False, default="assigned")
    current_day = Column(Integer, default=1)
    progress_percent = Column(Numeric(5, 2), default=0)
    started_at = Column(DateTime, nullable=True)
    last_module_completed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    reminder_count = Column(Integer, default=0)
    last_reminder_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
