from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


ITEM_TYPES = ("product", "material")
PROJECT_STATUSES = ("upcoming", "ongoing", "completed", "cancelled")
LOG_TYPES = ("status_change", "activity", "incident")


class Position(Base):
    __tablename__ = "positions"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    can_manage_projects = Column(Boolean, default=False, nullable=False)
    can_manage_inventory = Column(Boolean, default=False, nullable=False)
    can_manage_users = Column(Boolean, default=False, nullable=False)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="position")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    position_id = Column(Integer, ForeignKey("positions.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    position = relationship("Position", back_populates="users")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False, unique=True)


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    type = Column(String(50), nullable=False, default="site")
    street = Column(String(255), nullable=True)
    barangay = Column(String(150), nullable=True)
    city = Column(String(150), nullable=True)
    province = Column(String(150), nullable=True)
    region = Column(String(150), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    @property
    def full_address(self) -> str:
        parts = [self.street, self.barangay, self.city, self.province]
        return ", ".join(part for part in parts if part)


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    type = Column(Enum(*ITEM_TYPES, name="item_type"), nullable=False)
    brand_id = Column(Integer, ForeignKey("brands.id"), nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    delivered_quantity = Column(Integer, nullable=False, default=0)
    damaged_quantity = Column(Integer, nullable=False, default=0)
    lost_quantity = Column(Integer, nullable=False, default=0)
    available_quantity = Column(Integer, nullable=False, default=0)
    warehouse_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    status = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    brand = relationship("Brand")
    warehouse_location = relationship("Location")
    project_items = relationship("ProjectItem", back_populates="item")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True)
    jo_number = Column(String(50), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(*PROJECT_STATUSES, name="project_status"), nullable=False, default="upcoming")
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    creator = relationship("User")
    days = relationship("ProjectDay", back_populates="project", order_by="ProjectDay.project_date")


class ProjectDay(Base):
    __tablename__ = "project_days"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    project_date = Column(Date, nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    project = relationship("Project", back_populates="days")
    location = relationship("Location")
    items = relationship("ProjectItem", back_populates="project_day")
    personnel = relationship("ProjectPersonnel", back_populates="project_day")

    __table_args__ = (
        UniqueConstraint("project_id", "project_date", name="uq_project_day_date"),
    )


class ProjectItem(Base):
    __tablename__ = "project_items"

    id = Column(Integer, primary_key=True)
    project_day_id = Column(Integer, ForeignKey("project_days.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    allocated_quantity = Column(Integer, nullable=False, default=0)
    damaged_quantity = Column(Integer, nullable=False, default=0)
    lost_quantity = Column(Integer, nullable=False, default=0)
    returned_quantity = Column(Integer, nullable=False, default=0)
    status = Column(String(50), nullable=False, default="allocated")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    project_day = relationship("ProjectDay", back_populates="items")
    item = relationship("Item", back_populates="project_items")

    __table_args__ = (
        UniqueConstraint("project_day_id", "item_id", name="uq_project_item_day_item"),
        CheckConstraint("allocated_quantity >= 0", name="ck_project_item_allocated_non_negative"),
    )

    @property
    def outstanding_quantity(self) -> int:
        return int(self.allocated_quantity or 0) - int(self.returned_quantity or 0)


class Personnel(Base):
    __tablename__ = "personnel"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    contact_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)


class ProjectPersonnel(Base):
    __tablename__ = "project_personnel"

    project_day_id = Column(Integer, ForeignKey("project_days.id"), primary_key=True)
    personnel_id = Column(Integer, ForeignKey("personnel.id"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id"), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    project_day = relationship("ProjectDay", back_populates="personnel")
    personnel = relationship("Personnel")
    role = relationship("Role")


class ProjectLog(Base):
    __tablename__ = "project_logs"

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False)
    project_day_id = Column(Integer, nullable=True)
    log_type = Column(Enum(*LOG_TYPES, name="project_log_type"), nullable=False, default="activity")
    action = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    before_value = Column(Text, nullable=True)
    after_value = Column(Text, nullable=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    recorder = relationship("User")

    __table_args__ = (
        Index("ix_project_logs_project_created", "project_id", "created_at"),
    )
