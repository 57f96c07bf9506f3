"""Canonical records for data fetched from the Codeforces API.

Source payloads are validated into these models at the adapter boundary;
everything downstream works with typed fields only.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _SourceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ContestEntry(_SourceModel):
    """One element of ``user.rating``."""

    contest_id: int = Field(alias="contestId")
    contest_name: str = Field(alias="contestName")
    rank: int
    contest_time: datetime = Field(alias="ratingUpdateTimeSeconds")
    old_rating: int = Field(alias="oldRating")
    new_rating: int | None = Field(default=None, alias="newRating")
    rating_change: int | None = Field(default=None, alias="ratingChange")
    problems_solved: int = Field(default=0, alias="problems")

    @model_validator(mode="after")
    def _has_rating_outcome(self) -> ContestEntry:
        if self.new_rating is None and self.rating_change is None:
            msg = "contest entry has neither newRating nor ratingChange"
            raise ValueError(msg)
        return self

    @property
    def rating_after(self) -> int:
        """Source new rating, falling back to old rating plus the reported change."""
        if self.new_rating is not None:
            return self.new_rating
        return self.old_rating + (self.rating_change or 0)


class ProblemRef(_SourceModel):
    contest_id: int | None = Field(default=None, alias="contestId")
    index: str
    name: str
    rating: int | None = None


class SubmissionEntry(_SourceModel):
    """One element of ``user.status``."""

    id: int
    contest_id: int | None = Field(default=None, alias="contestId")
    submitted_at: datetime = Field(alias="creationTimeSeconds")
    problem: ProblemRef
    # Absent while the submission is still being judged
    verdict: str = "TESTING"
    programming_language: str | None = Field(default=None, alias="programmingLanguage")

    @property
    def problem_id(self) -> str:
        """Composite id ``{index}-{contestId}``, or ``{index}-problemset`` without a contest."""
        contest = self.problem.contest_id or self.contest_id
        return f"{self.problem.index}-{contest or 'problemset'}"


class ExternalProfile(BaseModel):
    """Everything fetched for one handle in a single sync."""

    handle: str
    contest_history: list[ContestEntry] = Field(default_factory=list)
    submissions: list[SubmissionEntry] = Field(default_factory=list)
