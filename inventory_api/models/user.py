"""User model."""

import uuid

from sqlalchemy import Column, String, Uuid

from inventory_api.database import Base


class User(Base):
    """Application user; only the fields needed to attribute uploads."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firstname = Column(String(100), nullable=True)
    lastname = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
