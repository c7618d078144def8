from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, model_validator


class CriterionScore(BaseModel):
    """Score of one judging criterion, list form"""
    id: str = Field(..., min_length=1)
    score: Any
    comment: Optional[str] = None


class EvaluationCreate(BaseModel):
    """Evaluation of a submission by a judge"""
    score: Optional[float] = Field(None, description="Overall score (0-100); defaults to the sum of criteria scores")
    criteria_scores: Dict[str, Any] = Field(default_factory=dict, description="Criterion id -> score")
    criteria: Optional[List[CriterionScore]] = Field(None, description="Criteria scores as a list of {id, score}")
    feedback: Optional[str] = Field(None, max_length=5000)
    round: int = Field(1, ge=1, description="Judging round")

    @model_validator(mode="after")
    def merge_criteria_list(self):
        if self.criteria:
            merged = {item.id: item.score for item in self.criteria}
            merged.update(self.criteria_scores)
            self.criteria_scores = merged
        return self


class EvaluationResponse(BaseModel):
    id: UUID
    submission_id: UUID
    judge_id: UUID
    event_id: UUID
    round: int
    score: float
    criteria_scores: Dict[str, float]
    feedback: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
