"""
Background Jobs - periodic connectivity refresh
Re-runs the full collection load on an interval: fast while offline, slow while online.
"""
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from hymnal.models.access import AuthState

logger = logging.getLogger('main')

JOB_ID = 'connectivity_refresh'


class ConnectivityMonitor:
    """Polling refresh of the accessible collections"""

    def __init__(self, context, online_interval=300, offline_interval=30, scheduler=None):
        self.context = context
        self.online_interval = online_interval
        self.offline_interval = offline_interval
        self.scheduler = scheduler or BackgroundScheduler()
        self.is_online = None

    @classmethod
    def from_settings(cls, context):
        conf = context.settings.get('connectivity', {})
        return cls(
            context,
            online_interval=conf.get('online_interval_seconds', 300),
            offline_interval=conf.get('offline_interval_seconds', 30),
        )

    @property
    def current_interval(self):
        return self.online_interval if self.is_online else self.offline_interval

    def check_now(self):
        """Run one poll synchronously and return the online flag"""
        result = self.context.songs.load_all_accessible(AuthState.anonymous())
        changed = result.is_online != self.is_online
        self.is_online = result.is_online
        if changed:
            logger.info(f"Connectivity: {'online' if self.is_online else 'offline'}")
        return self.is_online

    def _poll(self):
        was_interval = self.current_interval
        self.check_now()
        if self.current_interval != was_interval and self.scheduler.get_job(JOB_ID):
            self.scheduler.reschedule_job(JOB_ID, trigger=IntervalTrigger(seconds=self.current_interval))
            logger.debug(f"Connectivity poll every {self.current_interval}s")

    def start(self):
        """Poll once, then schedule the refresh job"""
        self.check_now()
        self.scheduler.add_job(
            func=self._poll,
            trigger=IntervalTrigger(seconds=self.current_interval),
            id=JOB_ID,
            name='Connectivity refresh',
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Connectivity monitor started (every {self.current_interval}s)")

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Connectivity monitor shutdown")
