"""queuepeek - read-only inspection of resque/sidekiq queues straight from Redis."""

__version__ = "0.1.0"
