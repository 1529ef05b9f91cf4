"""Request governance implementations.

Contains the sliding-window rate limiter, the retrying HTTP transport with
exponential backoff, and the concurrency-bounded work queue.
Bounded Context: API Resilience
"""
