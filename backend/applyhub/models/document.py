from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from applyhub.database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(Text, primary_key=True)
    sha256 = Column(Text, nullable=False, unique=True)
    stored_path = Column(Text, nullable=False, unique=True)
    mime_type = Column(Text, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    uploaded_by = Column(Text, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(Text, nullable=False)


class DocumentAssociation(Base):
    __tablename__ = "document_associations"
    __table_args__ = (
        CheckConstraint(
            "(applicant_id IS NOT NULL) + (application_id IS NOT NULL)"
            " + (custom_field_answer_id IS NOT NULL) = 1",
            name="ck_document_associations_single_owner",
        ),
    )

    id = Column(Text, primary_key=True)
    document_id = Column(Text, ForeignKey("documents.id"), nullable=False)
    category = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    applicant_id = Column(Text, ForeignKey("applicant_profiles.user_id", ondelete="CASCADE"))
    application_id = Column(Text, ForeignKey("applications.id", ondelete="CASCADE"))
    custom_field_answer_id = Column(Text, ForeignKey("custom_field_answers.id", ondelete="CASCADE"))
    created_at = Column(Text, nullable=False)

    document = relationship("Document")
