"""
Package: dispatch_queue
Description: Per-destination rate-limited dispatch queues.

Provides the queue manager, the per-destination FIFO with its rate-limit
bookkeeping, and the scheduler primitives they run on.
"""
