import dramatiq
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import (
    AgeLimit,
    AsyncIO,
    Callbacks,
    Pipelines,
    Retries,
    TimeLimit,
)

from core.settings import settings
from drammtiq_tasks.expire_reservations import create_reservation_expiry_task


class DramatiqManager:
    def __init__(self):
        self.REDIS_URL = settings.DRAMATIQ_REDIS_URL

        self.broker = RedisBroker(url=self.REDIS_URL)

        self.broker.add_middleware(AgeLimit(max_age=3600000))
        self.broker.add_middleware(TimeLimit(time_limit=600000))
        self.broker.add_middleware(Retries(max_retries=5))
        self.broker.add_middleware(Pipelines())
        self.broker.add_middleware(Callbacks())
        self.broker.add_middleware(AsyncIO())

        dramatiq.set_broker(self.broker)

        self._register_tasks()

        self.scheduler = BackgroundScheduler(timezone="UTC")
        self._register_cron_jobs()
        self.scheduler.start()

    def _register_tasks(self):
        create_reservation_expiry_task()

    def _register_cron_jobs(self):
        # lazy expiry on read stays authoritative; this only tidies the columns
        self.scheduler.add_job(
            func=lambda: self.broker.get_actor("release_expired_reservations").send(),
            trigger=CronTrigger(minute=0),
            id="release-expired-reservations-hourly",
            replace_existing=True,
        )


dramatiq_app = DramatiqManager()
