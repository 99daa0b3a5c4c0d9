"""Owns the proactive triggers and their periodic tasks."""

import logging

from ..buddies import DEFAULT_BUDDY_ID, SPACE_BUDDY_ID, list_buddies
from ..clients.base import (
    CalendarClient,
    EmailClient,
    LLMClient,
    LocationProvider,
    NewsClient,
    NotificationScheduler,
    SatelliteClient,
    ScreenTextProvider,
)
from ..conversation import Messenger
from ..logging import JSONLLogger
from ..reminders import ReminderService
from ..timeutil import Clock, utc_now
from .config import SchedulerConfig
from .periodic import PeriodicTask
from .triggers import (
    CalendarTrigger,
    EmailTrigger,
    ReminderTrigger,
    SatellitePassTrigger,
    ScreenReactionTrigger,
    SpaceNewsTrigger,
    Trigger,
)

logger = logging.getLogger(__name__)


class ProactiveScheduler:
    """Runs each registered trigger on its own cancellable interval."""

    def __init__(self, config: SchedulerConfig | None = None) -> None:
        self.config = config or SchedulerConfig()
        self._triggers: dict[str, Trigger] = {}
        self._tasks: dict[str, PeriodicTask] = {}

    @property
    def names(self) -> list[str]:
        return list(self._triggers)

    def add(self, trigger: Trigger, interval: float, name: str | None = None) -> PeriodicTask:
        """Register a trigger. The task starts with ``start()``."""
        name = name or f"{trigger.name}:{trigger.agent_id}"
        if name in self._triggers:
            raise ValueError(f"Trigger already registered: {name}")
        self._triggers[name] = trigger
        task = PeriodicTask(name, interval, trigger.run)
        self._tasks[name] = task
        return task

    def start(self) -> None:
        for task in self._tasks.values():
            task.start()

    async def stop(self) -> None:
        for task in self._tasks.values():
            await task.cancel()

    async def cancel(self, name: str) -> None:
        """Stop a single trigger, leaving the others running."""
        task = self._tasks.get(name)
        if task is None:
            raise KeyError(name)
        await task.cancel()

    async def tick(self, name: str) -> int:
        """Run one poll of a trigger now. Returns the number of messages published."""
        return await self._triggers[name].run()

    def is_running(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and task.running


def build_scheduler(
    messenger: Messenger,
    llm: LLMClient,
    *,
    config: SchedulerConfig | None = None,
    screen: ScreenTextProvider | None = None,
    news: NewsClient | None = None,
    satellites: SatelliteClient | None = None,
    location: LocationProvider | None = None,
    email: EmailClient | None = None,
    calendar: CalendarClient | None = None,
    reminders: ReminderService | None = None,
    notifier: NotificationScheduler | None = None,
    event_logger: JSONLLogger | None = None,
    clock: Clock = utc_now,
) -> ProactiveScheduler:
    """Wire the standard triggers for whichever services are available."""
    scheduler = ProactiveScheduler(config)
    config = scheduler.config
    common = {"config": config, "event_logger": event_logger, "clock": clock}

    if screen is not None:
        for buddy in list_buddies():
            if buddy.is_space:
                continue
            scheduler.add(
                ScreenReactionTrigger(buddy, screen, llm, messenger, **common),
                config.screen_interval,
            )

    if news is not None:
        scheduler.add(SpaceNewsTrigger(SPACE_BUDDY_ID, news, messenger, **common), config.space_interval)
    if satellites is not None and location is not None:
        scheduler.add(
            SatellitePassTrigger(SPACE_BUDDY_ID, satellites, location, messenger, **common),
            config.space_interval,
        )

    if email is not None:
        scheduler.add(
            EmailTrigger(
                DEFAULT_BUDDY_ID,
                email,
                llm,
                messenger,
                calendar=calendar,
                reminders=reminders,
                notifier=notifier,
                **common,
            ),
            config.email_interval,
        )
    if calendar is not None:
        scheduler.add(
            CalendarTrigger(DEFAULT_BUDDY_ID, calendar, messenger, notifier=notifier, **common),
            config.calendar_interval,
        )
    if reminders is not None:
        scheduler.add(
            ReminderTrigger(DEFAULT_BUDDY_ID, reminders.store, messenger, notifier=notifier, **common),
            config.reminder_interval,
        )

    logger.info(f"Scheduler ready with triggers: {', '.join(scheduler.names) or 'none'}")
    return scheduler
