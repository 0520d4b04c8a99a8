from enum import Enum


class UserRole(str, Enum):
    APPLICANT = "APPLICANT"
    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"


class JobState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class DocumentCategory(str, Enum):
    CV = "CV"
    REFERENCE = "REFERENCE"
    BACHELOR_TRANSCRIPT = "BACHELOR_TRANSCRIPT"
    MASTER_TRANSCRIPT = "MASTER_TRANSCRIPT"
    CUSTOM = "CUSTOM"


# Categories an applicant manages on the profile and on each application.
APPLICANT_CATEGORIES = (
    DocumentCategory.CV,
    DocumentCategory.REFERENCE,
    DocumentCategory.BACHELOR_TRANSCRIPT,
    DocumentCategory.MASTER_TRANSCRIPT,
)

SINGLE_DOCUMENT_CATEGORIES = {DocumentCategory.CV}


class ApplicationState(str, Enum):
    SAVED = "SAVED"
    SENT = "SENT"
    WITHDRAWN = "WITHDRAWN"
    # Owned by the evaluation subsystem.
    IN_REVIEW = "IN_REVIEW"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    JOB_CLOSED = "JOB_CLOSED"


class CustomFieldType(str, Enum):
    FREE_TEXT = "FREE_TEXT"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    FILE_UPLOAD = "FILE_UPLOAD"
