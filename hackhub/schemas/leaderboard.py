from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    submission_id: UUID
    team_id: UUID
    team_name: str
    title: str
    average_score: Optional[float] = None
    evaluation_count: int


class LeaderboardResponse(BaseModel):
    event_id: UUID
    entries: List[LeaderboardEntry]
    total: int
    limit: int
    offset: int
