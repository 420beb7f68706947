from intake.submission.pipeline import build_payload, interpret_response, submit_lead

__all__ = ["build_payload", "interpret_response", "submit_lead"]
