from celery import shared_task

from .dispatch import notify_engine


@shared_task(ignore_result=True)
def notify_engine_task(path: str, body: dict) -> bool:
    return notify_engine(path, body)
