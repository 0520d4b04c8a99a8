from applyhub.models.user import User
from applyhub.models.job import Job, CustomField
from applyhub.models.profile import ApplicantProfile
from applyhub.models.application import Application, CustomFieldAnswer
from applyhub.models.document import Document, DocumentAssociation

__all__ = [
    "User",
    "Job",
    "CustomField",
    "ApplicantProfile",
    "Application",
    "CustomFieldAnswer",
    "Document",
    "DocumentAssociation",
]
