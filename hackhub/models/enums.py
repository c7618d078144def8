from enum import Enum


class UserRole(str, Enum):
    PARTICIPANT = "participant"
    JUDGE = "judge"
    ADMIN = "admin"
    ORGANIZER = "organizer"


class EventStatus(str, Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JudgeRole(str, Enum):
    JUDGE = "judge"
    MENTOR = "mentor"
    REVIEWER = "reviewer"


class JudgeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class TeamStatus(str, Enum):
    ACTIVE = "active"
    DISQUALIFIED = "disqualified"
    WITHDRAWN = "withdrawn"


class TeamRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class TeamMemberStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    LEFT = "left"


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EvaluationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class NotificationType(str, Enum):
    SUBMISSION_CREATED = "submission_created"
    SUBMISSION_STATUS = "submission_status"
    EVALUATION_RECEIVED = "evaluation_received"
    TEAM_JOIN = "team_join"
    JUDGE_INVITATION = "judge_invitation"
    NEW_COMMENT = "new_comment"
    ANNOUNCEMENT = "announcement"
