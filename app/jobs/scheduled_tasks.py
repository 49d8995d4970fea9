import threading
import time
from typing import TYPE_CHECKING

import schedule

from infrastructure.logging import bind_job_context, get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from modules.webhook_retry import WebhookRetryService

logger = get_module_logger()

HEALTH_CHECK_INTERVAL_MINUTES = 5
DLQ_CLEANUP_TIME = "03:00"


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            with bind_job_context(job.__name__):
                return job(*args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "safe_run_error",
                error=str(e),
                function=job.__name__,
                module=job.__module__,
                exc_info=True,
            )

    return wrapper


def init(service: "WebhookRetryService", settings: "Settings"):
    logger.info(
        "scheduled_tasks_initialized",
        retry_interval_seconds=settings.retry.schedule_interval_seconds,
    )

    schedule.every(settings.retry.schedule_interval_seconds).seconds.do(
        safe_run(process_retry_queue), service=service
    )
    schedule.every().day.at(DLQ_CLEANUP_TIME).do(
        safe_run(cleanup_dead_letters),
        service=service,
        older_than_days=settings.retry.dlq_retention_days,
    )
    schedule.every(HEALTH_CHECK_INTERVAL_MINUTES).minutes.do(
        safe_run(retry_health_check), service=service
    )


def process_retry_queue(service: "WebhookRetryService"):
    result = service.process_retry_queue()
    if result.processed or result.errors:
        logger.info("scheduled_retry_run_complete", **result.to_dict())
    return result


def cleanup_dead_letters(service: "WebhookRetryService", older_than_days: int):
    deleted = service.cleanup_old_dlq_entries(older_than_days)
    logger.info(
        "scheduled_dlq_cleanup_complete",
        deleted=deleted,
        older_than_days=older_than_days,
    )
    return deleted


def retry_health_check(service: "WebhookRetryService"):
    report = service.check_retry_system_health()
    if report.healthy:
        logger.info("retry_system_healthy", **report.metrics)
    else:
        logger.error("retry_system_unhealthy", issues=report.issues, **report.metrics)
    return report


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True, name="retry-scheduler")
    continuous_thread.start()
    return cease_continuous_run
