from pavilion.engine.fixture_scheduler import FixtureScheduler, SchedulingError
from pavilion.engine import ball_processor

__all__ = ["FixtureScheduler", "SchedulingError", "ball_processor"]
