"""Submission validation package."""

from finance_tracker.validation.validator import SubmissionValidator

__all__ = ["SubmissionValidator"]
