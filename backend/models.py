# models.py — Database models for Custor Portal
# - Integer surrogate keys, composite keys for join tables
# - Soft deletes (is_active) for teams and memberships
# - Hard deletes for assignments, comments, notifications
# - Comments owned by a file OR a task through a tagged (owner_type, owner_id) pair

from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Boolean, BigInteger, Integer,
    ForeignKey, Text, Index, CheckConstraint, PrimaryKeyConstraint, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


# ============================================================
# ENUMS
# ============================================================

class RoleName(str, PyEnum):
    ADMIN = "Admin"
    MENTOR = "Mentor"
    INTERN = "Intern"


class TaskStatus(str, PyEnum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    IN_REVIEW = "In Review"
    DONE = "Done"


class TaskPriority(str, PyEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class CommentOwner(str, PyEnum):
    FILE = "file"
    TASK = "task"


class NotificationType(str, PyEnum):
    """Tags written by the server. The column itself is open-ended."""
    COMMENT = "comment"
    TASK_UNASSIGNED = "task_unassigned"
    FILE_UPLOAD = "file_upload"


# ============================================================
# ROLES & USERS
# ============================================================

class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)

    users = relationship("User", back_populates="role")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    role = relationship("Role", back_populates="users", lazy="selectin")
    memberships = relationship("TeamMember", back_populates="user")
    notifications = relationship("Notification", back_populates="user", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ""


# ============================================================
# TEAMS
# ============================================================

class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Uniqueness of names is a convention only
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    members = relationship("TeamMember", back_populates="team", lazy="selectin")


class TeamMember(Base):
    """Membership row. Removal flips is_active so history is retained."""
    __tablename__ = "team_members"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="memberships", lazy="selectin")

    __table_args__ = (
        PrimaryKeyConstraint("team_id", "user_id", name="pk_team_members"),
        Index("idx_team_member_user_active", "user_id", "is_active"),
    )


# ============================================================
# PROJECTS & TASKS
# ============================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    creator = relationship("User", lazy="selectin")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TaskStatus.TODO.value)
    priority = Column(String(20), nullable=False, default=TaskPriority.LOW.value)
    deadline = Column(DateTime(timezone=True), nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    project = relationship("Project", lazy="selectin")
    assignees = relationship("TaskAssignee", back_populates="task", passive_deletes=True)


class TaskAssignee(Base):
    """Pure join row, hard-deleted on unassign."""
    __tablename__ = "task_assignees"

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    task = relationship("Task", back_populates="assignees")
    user = relationship("User", lazy="selectin")

    __table_args__ = (
        PrimaryKeyConstraint("task_id", "user_id", name="pk_task_assignees"),
    )


# ============================================================
# FILES
# ============================================================

class ProjectFile(Base):
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    file_type = Column(String(100), nullable=False)
    path = Column(String(1000), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    is_current = Column(Boolean, nullable=False, default=True)
    uploader_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    uploader = relationship("User", lazy="selectin")
    project = relationship("Project", lazy="selectin")

    __table_args__ = (
        Index("idx_file_project_name", "project_id", "name"),
        UniqueConstraint("project_id", "name", "version", name="uq_file_project_name_version"),
    )


# ============================================================
# COMMENTS
# ============================================================

class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_type = Column(String(10), nullable=False)
    owner_id = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    mentions = Column(Text, nullable=True)  # JSON-encoded list of mention strings
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_user_id = Column(String(100), nullable=True)  # free-form user/team target
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint("owner_type IN ('file', 'task')", name="ck_comment_owner_type"),
        Index("idx_comment_owner", "owner_type", "owner_id"),
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(String(500), nullable=False)
    type = Column(String(50), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    related_id = Column(Integer, nullable=True)  # file, comment or task id
    related_type = Column(String(50), nullable=True)

    user = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read"),
    )
