from .enums import (
    UserRole, EventStatus, JudgeRole, JudgeStatus, TeamStatus, TeamRole, TeamMemberStatus,
    SubmissionStatus, EvaluationStatus, NotificationType
)
from .user import User, User2Roles
from .role import Role
from .event import Event, EventJudge
from .team import Team, TeamMember
from .submission import Submission
from .evaluation import Evaluation
from .comment import Comment
from .announcement import Announcement, AnnouncementRecipient
from .notification import Notification

__all__ = [
    'User',
    'User2Roles',
    'Role',
    'Event',
    'EventJudge',
    'Team',
    'TeamMember',
    'Submission',
    'Evaluation',
    'Comment',
    'Announcement',
    'AnnouncementRecipient',
    'Notification',
    'UserRole',
    'EventStatus',
    'JudgeRole',
    'JudgeStatus',
    'TeamStatus',
    'TeamRole',
    'TeamMemberStatus',
    'SubmissionStatus',
    'EvaluationStatus',
    'NotificationType',
]
