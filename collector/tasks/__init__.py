from .retention import RetentionScheduler, seconds_until_next_run

__all__ = ['RetentionScheduler', 'seconds_until_next_run']
