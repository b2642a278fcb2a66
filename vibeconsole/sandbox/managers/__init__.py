"""Operations behind the sandbox endpoints.

Each module provides async functions that encapsulate registry access,
git and filesystem work.  Database-backed functions accept ``AsyncSession``
as a parameter and raise domain exceptions (``LookupError``, ``ValueError``,
``CommandError``), never HTTP exceptions -- that translation is the router's
responsibility.
"""
