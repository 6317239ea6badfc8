from sqlalchemy import Column, String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class Client(BaseModel):
    __tablename__ = "clients"

    name = Column(String(255), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)

    projects = relationship("Project", back_populates="client")

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}')>"
