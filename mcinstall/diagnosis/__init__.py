"""Installation diagnosis."""

from .integrity import IntegrityChecker
from .models import DiagnosisReport, Issue, IssueKind
from .report import Diagnosis, diagnose

__all__ = ["IntegrityChecker", "DiagnosisReport", "Issue", "IssueKind", "Diagnosis", "diagnose"]
