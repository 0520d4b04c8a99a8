from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.orm import relationship
from applyhub.database import Base


class Job(Base):
    __tablename__ = "jobs"

    id = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    supervising_professor_id = Column(Text, ForeignKey("users.id"), nullable=False)
    state = Column(Text, nullable=False, default="OPEN")
    created_at = Column(Text, nullable=False)

    supervising_professor = relationship("User")
    custom_fields = relationship("CustomField", back_populates="job", cascade="all, delete-orphan")


class CustomField(Base):
    __tablename__ = "custom_fields"

    id = Column(Text, primary_key=True)
    job_id = Column(Text, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    question = Column(Text, nullable=False)
    field_type = Column(Text, nullable=False)

    job = relationship("Job", back_populates="custom_fields")
