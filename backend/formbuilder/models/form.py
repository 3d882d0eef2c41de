from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Text, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from formbuilder.database import Base


class FormStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    DISABLED = "disabled"


class MediaType(str, enum.Enum):
    NONE = "none"
    IMAGE = "image"
    VIDEO = "video"
    LOGO = "logo"


class FieldType(str, enum.Enum):
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    DATE = "date"
    LOCATION = "location"


class Form(Base):
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(Enum(FormStatus), default=FormStatus.DRAFT, nullable=False)
    public_url = Column(String(100), unique=True, index=True, nullable=False)  # slug, never reassigned
    media_type = Column(Enum(MediaType), default=MediaType.NONE, nullable=False)
    media_url = Column(String(500), nullable=True)
    tutorial_video_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    fields = relationship(
        "Field",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="Field.order",
        foreign_keys="Field.form_id",
    )
    submissions = relationship("Submission", back_populates="form", cascade="all, delete-orphan")


class Field(Base):
    __tablename__ = "fields"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(255), nullable=False)
    type = Column(Enum(FieldType), nullable=False, default=FieldType.TEXT)
    required = Column(Boolean, default=False, nullable=False)
    placeholder = Column(String(255), nullable=True)
    options = Column(JSON, nullable=True)  # only for select / checkbox
    order = Column("order", Integer, nullable=False, default=0)
    enabled = Column(Boolean, default=True, nullable=False)

    # Conditional display: shown only while the controlling field holds show_when_value
    depends_on_field_id = Column(Integer, ForeignKey("fields.id", ondelete="SET NULL"), nullable=True)
    show_when_value = Column(String(255), nullable=True)

    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    form = relationship("Form", back_populates="fields", foreign_keys=[form_id])
    depends_on = relationship("Field", remote_side=[id], foreign_keys=[depends_on_field_id])
