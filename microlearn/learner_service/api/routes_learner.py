from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from datetime import datetime
from typing import List, Optional
import logging

from .. import importer, schemas
from microlearn.db import models
from microlearn.db.database import get_db
from microlearn.dependencies import get_assignment_workflow, get_notification_sender
from microlearn.exceptions import (
    AssignmentFailed, InvalidPhoneNumber, MissingPhoneError, NeedsConfirmation, NotificationDeliveryError,
)
from microlearn.progress_service.schemas import CourseProgressOut
from microlearn.services import assignment_service
from microlearn.services.assignment_service import AssignmentWorkflow
from microlearn.services.notifications import NotificationSender
from microlearn.services.phone import normalize_phone_number
from microlearn import config

router = APIRouter(tags=["Learners"])

logger = logging.getLogger("learner_service")


async def _get_learner_or_404(db: AsyncSession, learner_id: int) -> models.Learner:
    result = await db.execute(select(models.Learner).filter(models.Learner.id == learner_id))
    learner = result.scalars().first()
    if not learner:
        raise HTTPException(status_code=404, detail="Learner not found")
    return learner


@router.get("/", response_model=List[schemas.LearnerOut])
async def list_learners(status: str = None, db: AsyncSession = Depends(get_db)):
    query = select(models.Learner).order_by(models.Learner.name)
    if status:
        query = query.filter(models.Learner.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{learner_id}", response_model=schemas.LearnerOut)
async def get_learner(learner_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_learner_or_404(db, learner_id)


@router.post("/", response_model=schemas.LearnerOut, status_code=201)
async def create_learner(
    learner_data: schemas.LearnerCreate,
    db: AsyncSession = Depends(get_db),
    sender: NotificationSender = Depends(get_notification_sender),
):
    now = datetime.utcnow()
    learner = models.Learner(
        name=learner_data.name,
        email=learner_data.email,
        phone=learner_data.phone,
        status=learner_data.status,
        created_at=now,
        updated_at=now,
    )
    db.add(learner)
    await db.commit()
    await db.refresh(learner)
    logger.info(f"Created learner {learner.id} ({learner.name})")

    # Welcome message is best-effort; the learner exists either way
    try:
        phone = normalize_phone_number(learner.phone, config.PHONE_COUNTRY_CODE)
        await sender.send_welcome_message(learner.name, phone)
    except InvalidPhoneNumber as e:
        logger.warning(f"No welcome message for learner {learner.id}: {e}")
    except NotificationDeliveryError as e:
        logger.warning(f"Welcome message to learner {learner.id} failed: {e}")

    return learner


@router.put("/{learner_id}", response_model=schemas.LearnerOut)
async def update_learner(learner_id: int, learner_data: schemas.LearnerUpdate, db: AsyncSession = Depends(get_db)):
    learner = await _get_learner_or_404(db, learner_id)
    for field, value in learner_data.model_dump(exclude_unset=True).items():
        setattr(learner, field, value)
    learner.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(learner)
    logger.info(f"Updated learner {learner_id}")
    return learner


@router.delete("/{learner_id}", status_code=204)
async def delete_learner(learner_id: int, db: AsyncSession = Depends(get_db)):
    learner = await _get_learner_or_404(db, learner_id)
    await db.delete(learner)
    await db.commit()
    logger.info(f"Deleted learner {learner_id}")


@router.post("/{learner_id}/assign-course", response_model=CourseProgressOut)
async def assign_course(
    learner_id: int,
    data: schemas.AssignCourseRequest,
    db: AsyncSession = Depends(get_db),
    workflow: AssignmentWorkflow = Depends(get_assignment_workflow),
):
    learner = await _get_learner_or_404(db, learner_id)
    result = await db.execute(select(models.Course).filter(models.Course.id == data.course_id))
    course = result.scalars().first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    try:
        return await workflow.assign_learner(learner, course, confirm_overwrite=data.confirm_overwrite)
    except NeedsConfirmation as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "conflicting_courses": e.course_names},
        )
    except AssignmentFailed as e:
        if isinstance(e.cause, (InvalidPhoneNumber, MissingPhoneError)):
            status_code = 422
        elif e.stage == assignment_service.STAGE_NOTIFY_ASSIGNED:
            status_code = 502
        else:
            status_code = 500
        raise HTTPException(status_code=status_code, detail={"message": str(e), "stage": e.stage})


@router.delete("/{learner_id}/assigned-course", response_model=schemas.LearnerOut)
async def remove_assigned_course(learner_id: int, db: AsyncSession = Depends(get_db)):
    learner = await _get_learner_or_404(db, learner_id)
    learner.assigned_course_id = None
    learner.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(learner)
    logger.info(f"Removed assigned course from learner {learner_id}")
    return learner


@router.post("/import", response_model=schemas.LearnerImportResult)
async def import_learners(
    file: UploadFile = File(...),
    name_column: Optional[str] = Form(None),
    email_column: Optional[str] = Form(None),
    phone_column: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    content = await file.read()
    try:
        rows = importer.read_rows(file.filename, content)
    except importer.ImportFileError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not rows:
        raise HTTPException(status_code=400, detail="No data found in the file")

    columns = list(dict.fromkeys(column for row in rows for column in row))
    mapping = importer.guess_columns(columns)
    for field, column in (("name", name_column), ("email", email_column), ("phone", phone_column)):
        if column:
            if column not in columns:
                raise HTTPException(status_code=400, detail=f"Column {column!r} not found in file")
            mapping[field] = column
    unmapped = [field for field, column in mapping.items() if not column]
    if unmapped:
        raise HTTPException(
            status_code=400,
            detail={"message": "Could not match columns", "unmapped": unmapped, "columns": columns},
        )

    valid = []
    skipped = 0
    for row in rows:
        values = {field: row.get(column, "") for field, column in mapping.items()}
        if not all(values.values()):
            skipped += 1
            continue
        try:
            valid.append(schemas.LearnerCreate(**values))
        except ValidationError:
            skipped += 1

    imported = failed = 0
    now = datetime.utcnow()
    for batch in importer.chunks(valid):
        db.add_all([
            models.Learner(
                name=learner.name,
                email=learner.email,
                phone=learner.phone,
                status="active",
                created_at=now,
                updated_at=now,
            )
            for learner in batch
        ])
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to import a batch of {len(batch)} learner(s): {e}")
            failed += len(batch)
        else:
            imported += len(batch)

    logger.info(f"Imported {imported} learner(s) from {file.filename}: {failed} failed, {skipped} skipped")
    return {"total": len(rows), "imported": imported, "failed": failed, "skipped": skipped}
