"""Catalog models"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship
import enum

from labflow.database import Base


class CatalogKind(str, enum.Enum):
    TEST = "TEST"
    PACKAGE = "PACKAGE"


class Category(Base):
    """Groups tests for browsing, e.g. Diabetes or Thyroid"""
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    icon = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    tests = relationship("LabTest", back_populates="category")


class LabTest(Base):
    """Diagnostic tests and packages that can be ordered"""
    __tablename__ = "lab_tests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(Uuid, ForeignKey("categories.id"), index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    kind = Column(Enum(CatalogKind), nullable=False, default=CatalogKind.TEST)
    price_paise = Column(Integer, nullable=False)  # List price in paise
    discount_price_paise = Column(Integer)  # Sale price, when lower than list price
    preparation_instructions = Column(Text)
    report_time = Column(String(100))  # e.g. "24 hours"
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = relationship("Category", back_populates="tests")

    @property
    def effective_price_paise(self) -> int:
        if self.discount_price_paise is not None and self.discount_price_paise < self.price_paise:
            return self.discount_price_paise
        return self.price_paise
