from intake.qualification.completeness import CompletenessStatus, completeness_summary, compute_completeness

__all__ = ["CompletenessStatus", "completeness_summary", "compute_completeness"]
