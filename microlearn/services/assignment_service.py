"""
Course-assignment reconciliation.

For each learner: normalize the phone, look up active progress on that phone,
stop for confirmation if any exists, otherwise (or once confirmed) suspend it,
tell the learner about the suspension and the new course, point the learner
at the new course and insert a fresh ``assigned`` progress row.

Nothing here is transactional. Every repository call commits on its own and a
failure part way leaves the earlier steps applied. Two concurrent runs for the
same phone can both find no active progress and both insert a row.
"""
import logging
from typing import Iterable, List, Tuple

from microlearn.exceptions import (
    AssignmentFailed, InvalidPhoneNumber, MissingPhoneError, NeedsConfirmation,
    NotificationDeliveryError, RepositoryError,
)
from microlearn.progress_service.schemas import BatchResult, CourseProgressOut, LearnerOutcome
from microlearn.services.notifications import NotificationSender
from microlearn.services.phone import DEFAULT_COUNTRY_CODE, normalize_phone_number
from microlearn.services.progress_repository import ProgressRepository

logger = logging.getLogger("assignment_service")

# Stages reported on a failed attempt
STAGE_NORMALIZE = "normalize_phone"
STAGE_CHECK = "check_active"
STAGE_SUSPEND = "suspend_active"
STAGE_NOTIFY_ASSIGNED = "notify_assigned"
STAGE_UPDATE_LEARNER = "update_learner"
STAGE_INSERT = "insert_progress"


class AssignmentWorkflow:
    def __init__(self, repository: ProgressRepository, sender: NotificationSender,
                 country_code: str = DEFAULT_COUNTRY_CODE):
        self.repository = repository
        self.sender = sender
        self.country_code = country_code

    async def _notify(self, send, *, best_effort: bool, description: str) -> bool:
        """Await one notification.

        With ``best_effort`` a delivery failure is logged and reported as False;
        otherwise it propagates.
        """
        try:
            await send
        except NotificationDeliveryError as e:
            if not best_effort:
                raise
            logger.warning(f"Failed to send {description}: {e} (payload={e.payload!r})")
            return False
        return True

    async def assign_learner(self, learner, course, confirm_overwrite: bool = False) -> CourseProgressOut:
        """
        Run the workflow for one learner.

        Raises ``NeedsConfirmation`` when active progress exists and
        ``confirm_overwrite`` is False, and ``AssignmentFailed`` (with the
        failing stage) for anything else.
        """
        progress, _ = await self._assign(learner, course, confirm_overwrite)
        return progress

    async def _assign(self, learner, course, confirm_overwrite: bool) -> Tuple[CourseProgressOut, int]:
        suspended = 0
        logger.info(f"Assigning course {course.id} to learner {learner.id}")

        try:
            if not learner.phone:
                raise MissingPhoneError(f"Learner {learner.name} has no phone number")
            phone = normalize_phone_number(learner.phone, self.country_code)
        except (MissingPhoneError, InvalidPhoneNumber) as e:
            logger.error(f"Learner {learner.id}: {e}")
            raise AssignmentFailed(STAGE_NORMALIZE, e) from e

        try:
            active = await self.repository.find_active_by_phone(phone)
        except RepositoryError as e:
            raise AssignmentFailed(STAGE_CHECK, e) from e

        if active and not confirm_overwrite:
            names = [p.course_name for p in active]
            logger.info(f"Learner {learner.id} has active progress {names}, confirmation required")
            raise NeedsConfirmation(learner.id, names)

        if active:
            try:
                suspended = await self.repository.suspend_active_by_phone(phone)
            except RepositoryError as e:
                raise AssignmentFailed(STAGE_SUSPEND, e) from e
            logger.info(f"Suspended {suspended} course(s) for learner {learner.id}")

            # one message per previously active row
            for previous in active:
                await self._notify(
                    self.sender.send_course_suspension_notification(learner.name, previous.course_name, phone),
                    best_effort=True,
                    description=f"suspension notification for {previous.course_name!r} to {phone}",
                )

        try:
            await self._notify(
                self.sender.send_course_assignment_notification(learner.name, course.name, phone),
                best_effort=False,
                description=f"assignment notification for {course.name!r} to {phone}",
            )
        except NotificationDeliveryError as e:
            logger.error(f"Learner {learner.id} was not notified about course {course.id}, aborting")
            raise AssignmentFailed(STAGE_NOTIFY_ASSIGNED, e) from e

        try:
            await self.repository.update_learner_assigned_course(learner.id, course.id)
        except RepositoryError as e:
            raise AssignmentFailed(STAGE_UPDATE_LEARNER, e) from e

        try:
            progress = await self.repository.insert_assigned(learner, course, phone)
        except RepositoryError as e:
            raise AssignmentFailed(STAGE_INSERT, e) from e

        logger.info(f"Course {course.id} assigned to learner {learner.id} (progress {progress.id})")
        return progress, suspended

    async def _attempt(self, learner, learner_id: int, learner_name: str, course,
                       confirm_overwrite: bool) -> LearnerOutcome:
        outcome = LearnerOutcome(learner_id=learner_id, learner_name=learner_name, status="assigned")
        try:
            outcome.progress, outcome.suspended_count = await self._assign(learner, course, confirm_overwrite)
        except NeedsConfirmation as e:
            outcome.status = "needs_confirmation"
            outcome.conflicting_courses = e.course_names
        except AssignmentFailed as e:
            outcome.status = "failed"
            outcome.stage = e.stage
            outcome.error = str(e)
        return outcome

    async def assign(self, learners: Iterable, course, confirm_overwrite: bool = False) -> BatchResult:
        """
        Assign ``course`` to each learner in order.

        The first failed learner halts the batch and the rest are reported as
        ``skipped``. A learner needing confirmation does not halt it.

        Ids and names are read up front: a repository failure rolls the
        session back and expires every loaded learner.
        """
        entries = [(learner, learner.id, learner.name) for learner in learners]
        result = BatchResult(course_id=course.id)
        halted = False
        for learner, learner_id, learner_name in entries:
            if halted:
                result.outcomes.append(
                    LearnerOutcome(learner_id=learner_id, learner_name=learner_name, status="skipped")
                )
                continue
            outcome = await self._attempt(learner, learner_id, learner_name, course, confirm_overwrite)
            result.outcomes.append(outcome)
            if outcome.status == "failed":
                halted = True

        statuses: List[str] = [o.status for o in result.outcomes]
        if "failed" in statuses:
            result.status = "failed"
        elif "needs_confirmation" in statuses:
            result.status = "needs_confirmation"
        else:
            result.status = "done"
        return result
