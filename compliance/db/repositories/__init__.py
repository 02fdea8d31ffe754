"""
Per-domain repository modules for database access.

Every query on practice-owned data takes the ``practice_id`` so that callers
cannot read or mutate another practice's rows by id alone.
"""
