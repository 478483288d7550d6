from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import List
import logging

from .. import schemas
from microlearn import config
from microlearn.db import models
from microlearn.db.database import get_db
from microlearn.dependencies import get_assignment_workflow, get_progress_repository
from microlearn.exceptions import InvalidPhoneNumber
from microlearn.services.assignment_service import AssignmentWorkflow
from microlearn.services.phone import normalize_phone_number
from microlearn.services.progress_repository import ProgressRepository

router = APIRouter(tags=["Progress"])

logger = logging.getLogger("progress_service")


@router.post("/assign", response_model=schemas.BatchResult)
async def assign_course(
    data: schemas.BatchAssignRequest,
    db: AsyncSession = Depends(get_db),
    workflow: AssignmentWorkflow = Depends(get_assignment_workflow),
):
    if not data.learner_ids:
        raise HTTPException(status_code=400, detail="Select at least one learner")

    result = await db.execute(select(models.Course).filter(models.Course.id == data.course_id))
    course = result.scalars().first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    result = await db.execute(select(models.Learner).filter(models.Learner.id.in_(data.learner_ids)))
    found = {learner.id: learner for learner in result.scalars().all()}
    missing = [i for i in data.learner_ids if i not in found]
    if missing:
        raise HTTPException(status_code=404, detail=f"Learners not found: {missing}")

    # keep the operator's selection order
    learners = [found[i] for i in dict.fromkeys(data.learner_ids)]
    logger.info(f"Batch assignment of course {course.id} to {len(learners)} learner(s)")

    batch = await workflow.assign(learners, course, confirm_overwrite=data.confirm_overwrite)
    if batch.first_failure:
        failure = batch.first_failure
        logger.error(
            f"Batch assignment of course {batch.course_id} halted at learner {failure.learner_id} "
            f"({failure.stage}): {failure.error}"
        )
    return batch


@router.get("/", response_model=List[schemas.CourseProgressOut])
async def list_progress_by_phone(
    phone: str,
    status: str = None,
    repository: ProgressRepository = Depends(get_progress_repository),
):
    try:
        canonical = normalize_phone_number(phone, config.PHONE_COUNTRY_CODE)
    except InvalidPhoneNumber as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await repository.list_by_phone(canonical, status=status)


@router.get("/learner/{learner_id}", response_model=List[schemas.CourseProgressOut])
async def list_progress_for_learner(learner_id: int, repository: ProgressRepository = Depends(get_progress_repository)):
    return await repository.list_for_learner(learner_id)


@router.get("/stats", response_model=List[schemas.CourseStats])
async def course_stats(repository: ProgressRepository = Depends(get_progress_repository)):
    return await repository.course_stats()
