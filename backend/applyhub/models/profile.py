from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship
from applyhub.database import Base

# Personal and academic fields held by a profile and copied onto each application.
SNAPSHOT_FIELDS = (
    "first_name",
    "last_name",
    "gender",
    "nationality",
    "birthday",
    "phone_number",
    "website",
    "linkedin_url",
    "street",
    "postal_code",
    "city",
    "country",
    "bachelor_degree_name",
    "bachelor_grade_upper_limit",
    "bachelor_grade_lower_limit",
    "bachelor_grade",
    "bachelor_university",
    "master_degree_name",
    "master_grade_upper_limit",
    "master_grade_lower_limit",
    "master_grade",
    "master_university",
)


class SnapshotMixin:
    first_name = Column(Text)
    last_name = Column(Text)
    gender = Column(Text)
    nationality = Column(Text)
    birthday = Column(Text)
    phone_number = Column(Text)
    website = Column(Text)
    linkedin_url = Column(Text)
    street = Column(Text)
    postal_code = Column(Text)
    city = Column(Text)
    country = Column(Text)
    bachelor_degree_name = Column(Text)
    bachelor_grade_upper_limit = Column(Text)
    bachelor_grade_lower_limit = Column(Text)
    bachelor_grade = Column(Text)
    bachelor_university = Column(Text)
    master_degree_name = Column(Text)
    master_grade_upper_limit = Column(Text)
    master_grade_lower_limit = Column(Text)
    master_grade = Column(Text)
    master_university = Column(Text)


def copy_snapshot(source, target) -> None:
    """Overwrite every snapshot field of target with the value on source."""
    for field in SNAPSHOT_FIELDS:
        setattr(target, field, getattr(source, field))


class ApplicantProfile(SnapshotMixin, Base):
    __tablename__ = "applicant_profiles"

    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    updated_at = Column(Text, nullable=False)

    user = relationship("User")
    applications = relationship("Application", back_populates="applicant", cascade="all, delete-orphan")
