from sqlalchemy import Column, String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel

# Projects with this name use "General" for their system task
TIME_TRACKING_PROJECT_NAME = "Time Tracking"


class Project(BaseModel):
    """Project model"""
    __tablename__ = "projects"

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    archived = Column(Boolean, nullable=False, default=False)
    is_system = Column(Boolean, nullable=False, default=False)

    client = relationship("Client", back_populates="projects")
    tasks = relationship("Task", back_populates="project")

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', client_id={self.client_id})>"
