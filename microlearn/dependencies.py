from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from microlearn import config
from microlearn.db.database import get_db
from microlearn.services.assignment_service import AssignmentWorkflow
from microlearn.services.notifications import NotificationSender
from microlearn.services.progress_repository import ProgressRepository


def get_notification_sender() -> NotificationSender:
    return NotificationSender(**config.get_whatsapp_settings())


def get_progress_repository(db: AsyncSession = Depends(get_db)) -> ProgressRepository:
    return ProgressRepository(db)


def get_assignment_workflow(
    repository: ProgressRepository = Depends(get_progress_repository),
    sender: NotificationSender = Depends(get_notification_sender),
) -> AssignmentWorkflow:
    return AssignmentWorkflow(repository, sender, country_code=config.PHONE_COUNTRY_CODE)
