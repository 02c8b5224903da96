"""
Study Pulse Test Suite

Unit and integration tests for reminders, delivery and learner metrics.

Test Structure:
    tests/
    ├── conftest.py              # Shared fixtures (frozen clock, mocked session/sender)
    ├── unit/                    # Unit tests (isolated, no external dependencies)
    │   ├── test_day_classifier.py   # Study day rules
    │   ├── test_streak_tracking.py  # Streak analysis
    │   ├── test_generator.py        # Reminder generation
    │   ├── test_delivery.py         # Delivery loop, retries, dead-lettering
    │   ├── test_scheduler.py        # APScheduler jobs and daily guard
    │   └── ...
    └── integration/             # Integration tests (require PostgreSQL)
        ├── test_reminder_flow.py    # Generation, delivery and metrics end-to-end
        └── test_api.py              # Routers against the real services

Running Tests:
    # Run all tests
    pytest backend/tests/ -v

    # Run only unit tests (fast, no dependencies)
    pytest backend/tests/unit/ -v

    # Run only integration tests (requires a PostgreSQL test database)
    pytest backend/tests/integration/ -v -m integration
"""
