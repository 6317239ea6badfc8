from .user import User, UserRole, UserStatus
from .auth import UserSession, InvitationToken, PasswordResetToken
from .client import Client
from .project import Project
from .task import Task, TaskAssignment, TaskStatus, TaskPriority
from .time_entry import TimeEntry
from .team import Team, TeamMember, ProjectTeam, TeamRole
from .collaboration import TaskDiscussion, TaskFile, TaskLink, TaskNote, DiscussionType
from .notification import Notification, NotificationType
