from sqlalchemy import Column, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from applyhub.database import Base
from applyhub.models.profile import SnapshotMixin


class Application(SnapshotMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("applicant_id", "job_id"),)

    id = Column(Text, primary_key=True)
    applicant_id = Column(Text, ForeignKey("applicant_profiles.user_id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    state = Column(Text, nullable=False, default="SAVED")
    applied_at = Column(Text)
    desired_start_date = Column(Text)
    motivation = Column(Text)
    projects = Column(Text)
    special_skills = Column(Text)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    applicant = relationship("ApplicantProfile", back_populates="applications")
    job = relationship("Job")
    custom_field_answers = relationship(
        "CustomFieldAnswer", back_populates="application", cascade="all, delete-orphan"
    )


class CustomFieldAnswer(Base):
    __tablename__ = "custom_field_answers"
    __table_args__ = (UniqueConstraint("application_id", "custom_field_id"),)

    id = Column(Text, primary_key=True)
    application_id = Column(Text, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    custom_field_id = Column(Text, ForeignKey("custom_fields.id", ondelete="CASCADE"), nullable=False)
    answer = Column(Text)

    application = relationship("Application", back_populates="custom_field_answers")
    custom_field = relationship("CustomField")
