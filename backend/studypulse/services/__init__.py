"""
Services Package

Business logic for study reminders, push delivery and learner metrics.

Subpackages:
- scheduling: Day Classifier (is today a study day?)
- learning: streaks, metrics recomputation, learner preferences
- notifications: reminder generation, delivery loop, push sender, inbox

Modules:
- clock: injectable time source
- scheduler: APScheduler driver for the periodic batch jobs
"""
