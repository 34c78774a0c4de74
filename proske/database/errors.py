"""Helpers for PostgREST errors returned by the Supabase client."""

from postgrest.exceptions import APIError

UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: Exception) -> bool:
    return isinstance(exc, APIError) and getattr(exc, "code", None) == UNIQUE_VIOLATION
