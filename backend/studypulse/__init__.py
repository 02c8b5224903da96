"""Study Pulse - study reminders, push delivery and learner progress metrics."""

__version__ = "0.1.0"
