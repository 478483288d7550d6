from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from datetime import datetime
from typing import List
import logging

from .. import schemas
from microlearn.db import models
from microlearn.db.database import get_db

course_router = APIRouter(tags=["Courses"])

logger = logging.getLogger("course_service")

MODULES_PER_DAY = 3


async def _get_course_or_404(db: AsyncSession, course_id: int) -> models.Course:
    result = await db.execute(
        select(models.Course)
        .options(selectinload(models.Course.days))
        .filter(models.Course.id == course_id)
    )
    course = result.scalars().first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _build_days(days: List[schemas.CourseDayIn]) -> List[models.CourseDay]:
    numbers = [d.day_number for d in days]
    if len(numbers) != len(set(numbers)):
        raise HTTPException(status_code=400, detail="Day numbers must be unique within a course")
    return [models.CourseDay(**d.model_dump()) for d in sorted(days, key=lambda d: d.day_number)]


@course_router.get("/", response_model=List[schemas.CourseOut])
async def list_courses(status: str = None, visibility: str = None, db: AsyncSession = Depends(get_db)):
    query = select(models.Course).options(selectinload(models.Course.days)).order_by(models.Course.created_at.desc())
    if status:
        query = query.filter(models.Course.status == status)
    if visibility:
        query = query.filter(models.Course.visibility == visibility)
    result = await db.execute(query)
    return result.scalars().all()


@course_router.get("/{course_id}", response_model=schemas.CourseOut)
async def get_course_detail(course_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_course_or_404(db, course_id)


@course_router.post("/", response_model=schemas.CourseOut, status_code=201)
async def create_course(course_data: schemas.CourseCreate, db: AsyncSession = Depends(get_db)):
    now = datetime.utcnow()
    new_course = models.Course(
        name=course_data.name,
        description=course_data.description,
        category=course_data.category,
        language=course_data.language,
        visibility=course_data.visibility,
        status=course_data.status,
        created_at=now,
        updated_at=now,
        days=_build_days(course_data.days),
    )
    db.add(new_course)
    await db.commit()
    logger.info(f"Created course {new_course.id} ({new_course.name}) with {len(course_data.days)} day(s)")
    return await _get_course_or_404(db, new_course.id)


@course_router.put("/{course_id}", response_model=schemas.CourseOut)
async def update_course(course_id: int, course_data: schemas.CourseUpdate, db: AsyncSession = Depends(get_db)):
    course = await _get_course_or_404(db, course_id)
    fields = course_data.model_dump(exclude_unset=True, exclude={"days"})
    for field, value in fields.items():
        setattr(course, field, value)

    if course_data.days is not None:
        # replace all days; delete-orphan removes the old rows
        course.days = []
        await db.flush()
        course.days = _build_days(course_data.days)

    course.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Updated course {course_id}")
    return course


@course_router.patch("/{course_id}/status", response_model=schemas.CourseOut)
async def update_course_status(course_id: int, data: schemas.CourseStatusUpdate, db: AsyncSession = Depends(get_db)):
    course = await _get_course_or_404(db, course_id)
    course.status = data.status
    course.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Course {course_id} status set to {data.status}")
    return course


@course_router.post("/{course_id}/toggle-visibility", response_model=schemas.CourseOut)
async def toggle_course_visibility(course_id: int, db: AsyncSession = Depends(get_db)):
    course = await _get_course_or_404(db, course_id)
    course.visibility = "private" if course.visibility == "public" else "public"
    course.updated_at = datetime.utcnow()
    await db.commit()
    logger.info(f"Course {course_id} visibility set to {course.visibility}")
    return course


@course_router.delete("/{course_id}", status_code=204)
async def delete_course(course_id: int, db: AsyncSession = Depends(get_db)):
    course = await _get_course_or_404(db, course_id)
    await db.delete(course)
    await db.commit()
    logger.info(f"Deleted course {course_id}")
