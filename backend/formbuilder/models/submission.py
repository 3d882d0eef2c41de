from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from formbuilder.database import Base


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    form = relationship("Form", back_populates="submissions")
    values = relationship(
        "SubmissionValue",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionValue.id",
    )


class SubmissionValue(Base):
    __tablename__ = "submission_values"
    __table_args__ = (
        UniqueConstraint("submission_id", "field_id", name="uq_submission_values_submission_field"),
    )

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    # Nulled when the field is deleted; field_label keeps the answer readable
    field_id = Column(Integer, ForeignKey("fields.id", ondelete="SET NULL"), nullable=True, index=True)
    field_label = Column(String(255), nullable=False, default="")
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    submission = relationship("Submission", back_populates="values")
    field = relationship("Field")
