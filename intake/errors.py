"""Hard errors: stable ``code`` plus a message that is safe to show a visitor."""


class IntakeError(Exception):
    code = "INTAKE_ERROR"
    status_code = 400

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class SchemaConfigError(IntakeError):
    """Practice-area catalog failed validation at load time."""

    code = "SCHEMA_CONFIG_INVALID"
    status_code = 500


class UnknownCategoryError(IntakeError):
    code = "UNKNOWN_CATEGORY"
    status_code = 422

    def __init__(self, category: str):
        super().__init__(f"Unknown practice area: {category}")
        self.category = category


class SessionNotFoundError(IntakeError):
    code = "SESSION_NOT_FOUND"
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("This conversation has expired or does not exist. Please start a new one.")
        self.session_id = session_id


class SessionNotReadyError(IntakeError):
    """Submission attempted before every required field was collected."""

    code = "SESSION_NOT_COMPLETE"
    status_code = 409

    def __init__(self, session_id: str, stage: str):
        super().__init__("We still need a few details before we can send your information.")
        self.session_id = session_id
        self.stage = stage


class LeadAlreadySubmittedError(IntakeError):
    code = "LEAD_ALREADY_SUBMITTED"
    status_code = 409

    def __init__(self, session_id: str, lead_id: str | None):
        super().__init__("Your information has already been sent to an attorney.")
        self.session_id = session_id
        self.lead_id = lead_id
