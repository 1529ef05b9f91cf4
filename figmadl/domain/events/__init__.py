"""Domain Event definitions.

Represents governance decisions (deferrals, retries, batch boundaries, queue
admissions) that logging and tests can observe without depending on timing.
"""
