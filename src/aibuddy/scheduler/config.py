"""Scheduler configuration."""

from dataclasses import dataclass


@dataclass
class SchedulerConfig:
    """Intervals and windows for proactive triggers, in seconds unless noted."""

    screen_interval: float = 2
    space_interval: float = 3 * 60 * 60
    email_interval: float = 60
    calendar_interval: float = 60
    reminder_interval: float = 30

    news_lookback: float = 24 * 60 * 60
    pass_grace: float = 5 * 60
    pass_horizon: float = 24 * 60 * 60
    calendar_window: float = 60 * 60
    calendar_alert_lead: float = 5 * 60
    email_batch_size: int = 5
    reminder_retention_days: int = 30

    satellite_id: int = 25544
    min_elevation: float = 10
    lookahead_days: int = 3
