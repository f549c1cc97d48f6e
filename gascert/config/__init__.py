"""Static company identity defaults; runtime settings live in the store."""

from .company import COMPANY_PROFILE, company_context

__all__ = ["COMPANY_PROFILE", "company_context"]
