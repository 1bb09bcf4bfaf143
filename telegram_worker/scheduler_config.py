"""
Scheduler Configuration for Task and Event Alerts

Defines alert thresholds and scheduler settings.
"""

# Lead times (minutes before due) at which tasks and events are announced
ALERT_1_WEEK = 10080
ALERT_48_HOURS = 2880
ALERT_24_HOURS = 1440
ALERT_1_HOUR = 60
ALERT_10_MIN = 10

ALERT_THRESHOLDS = frozenset({
    ALERT_1_WEEK,
    ALERT_48_HOURS,
    ALERT_24_HOURS,
    ALERT_1_HOUR,
    ALERT_10_MIN,
})

# User scheduled reminders fire once, on their own minute
REMINDER_THRESHOLD = 0

# Alert jobs run once per minute, this many seconds after the boundary
DEFAULT_GRACE_SECONDS = 5

# How many items /next lists
UPCOMING_LIMIT = 10
