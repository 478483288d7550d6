import logging
from datetime import datetime
from typing import List

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from microlearn.db.models import CourseProgress, Learner
from microlearn.exceptions import RepositoryError
from microlearn.progress_service.schemas import CourseProgressOut, CourseStats

logger = logging.getLogger("progress_repository")

ACTIVE_STATUSES = ("assigned", "started")


class ProgressRepository:
    """
    Course progress reads and writes against one session.

    Every write commits on its own; a failure rolls back only the call that
    failed and is raised as ``RepositoryError``. Rows leave as validated
    ``CourseProgressOut`` records.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fail(self, action: str, e: SQLAlchemyError):
        await self.session.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise RepositoryError(f"Failed to {action}: {e}") from e

    async def find_active_by_phone(self, phone: str) -> List[CourseProgressOut]:
        try:
            result = await self.session.execute(
                select(CourseProgress)
                .filter(CourseProgress.phone_number == phone, CourseProgress.status.in_(ACTIVE_STATUSES))
                .order_by(CourseProgress.id)
            )
        except SQLAlchemyError as e:
            await self._fail(f"check active progress for {phone}", e)
        return [CourseProgressOut.model_validate(row) for row in result.scalars().all()]

    async def suspend_active_by_phone(self, phone: str) -> int:
        try:
            result = await self.session.execute(
                update(CourseProgress)
                .where(CourseProgress.phone_number == phone, CourseProgress.status.in_(ACTIVE_STATUSES))
                .values(status="suspended")
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"suspend active progress for {phone}", e)
        logger.info(f"Suspended {result.rowcount} active progress record(s) for {phone}")
        return result.rowcount

    async def insert_assigned(self, learner, course, phone: str) -> CourseProgressOut:
        now = datetime.utcnow()
        progress = CourseProgress(
            learner_id=learner.id,
            learner_name=learner.name,
            course_id=course.id,
            course_name=course.name,
            phone_number=phone,
            status="assigned",
            current_day=1,
            progress_percent=0,
            started_at=now,
            last_module_completed_at=now,
            reminder_count=0,
        )
        try:
            self.session.add(progress)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"create progress for learner {learner.id}", e)

        # committed from here on; a failed reload must not roll the row back
        progress_id = progress.id
        try:
            await self.session.refresh(progress)
        except SQLAlchemyError as e:
            logger.error(f"Progress {progress_id} was created but could not be reloaded: {e}")
            raise RepositoryError(f"Progress {progress_id} was created but could not be reloaded: {e}") from e
        logger.info(f"Created progress {progress.id}: learner {learner.id} -> course {course.id}")
        return CourseProgressOut.model_validate(progress)

    async def update_learner_assigned_course(self, learner_id: int, course_id: int) -> None:
        try:
            result = await self.session.execute(
                update(Learner)
                .where(Learner.id == learner_id)
                .values(assigned_course_id=course_id, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self._fail(f"update learner {learner_id}", e)
        if result.rowcount == 0:
            raise RepositoryError(f"Learner {learner_id} not found")

    async def list_by_phone(self, phone: str, status: str = None) -> List[CourseProgressOut]:
        query = select(CourseProgress).filter(CourseProgress.phone_number == phone)
        if status:
            query = query.filter(CourseProgress.status == status)
        try:
            result = await self.session.execute(query.order_by(CourseProgress.id.desc()))
        except SQLAlchemyError as e:
            await self._fail(f"list progress for {phone}", e)
        return [CourseProgressOut.model_validate(row) for row in result.scalars().all()]

    async def list_for_learner(self, learner_id: int) -> List[CourseProgressOut]:
        try:
            result = await self.session.execute(
                select(CourseProgress)
                .filter(CourseProgress.learner_id == learner_id)
                .order_by(CourseProgress.id.desc())
            )
        except SQLAlchemyError as e:
            await self._fail(f"list progress for learner {learner_id}", e)
        return [CourseProgressOut.model_validate(row) for row in result.scalars().all()]

    async def course_stats(self) -> List[CourseStats]:
        completed = func.sum(case((CourseProgress.status == "completed", 1), else_=0))
        try:
            result = await self.session.execute(
                select(
                    CourseProgress.course_id,
                    CourseProgress.course_name,
                    func.count(CourseProgress.id),
                    completed,
                )
                .group_by(CourseProgress.course_id, CourseProgress.course_name)
                .order_by(CourseProgress.course_name)
            )
        except SQLAlchemyError as e:
            await self._fail("aggregate course statistics", e)

        stats = []
        for course_id, course_name, total, done in result.all():
            done = int(done or 0)
            stats.append(CourseStats(
                course_id=course_id,
                course_name=course_name,
                learners=total,
                completed=done,
                completion_rate=round(done / total * 100, 2) if total else 0.0,
            ))
        return stats
