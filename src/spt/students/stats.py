"""Read-time statistics over a student's stored contest results and submissions.

"Solved" means at least one ``OK`` submission; a problem counts once no matter
how many accepted submissions it has.

Consumed by the admin/HTTP layer when it renders the student dashboard.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from spt.db.models import ContestResult, SubmissionRecord

ACCEPTED_VERDICT = "OK"
PROBLEM_URL = "https://codeforces.com/problemset/problem"


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def unique_solved_key(submission: SubmissionRecord) -> str:
    # problem_id already carries the contest (or "problemset")
    return submission.problem_id


def _since(days: int | None, now: datetime | None) -> datetime | None:
    if days is None:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    return as_utc(now) - timedelta(days=days)


def _first_solves(submissions: Iterable[SubmissionRecord], since: datetime | None) -> list[SubmissionRecord]:
    """Earliest accepted submission per problem, within the window."""
    seen: dict[str, SubmissionRecord] = {}
    for sub in sorted(submissions, key=lambda s: as_utc(s.submitted_at)):
        if sub.verdict != ACCEPTED_VERDICT:
            continue
        if since is not None and as_utc(sub.submitted_at) < since:
            continue
        seen.setdefault(unique_solved_key(sub), sub)
    return list(seen.values())


# ---------------------------------------------------------------------------
# Contest history
# ---------------------------------------------------------------------------


def contest_history_since(
    contests: Iterable[ContestResult],
    days: int | None = None,
    now: datetime | None = None,
) -> list[ContestResult]:
    """Contests in the last ``days`` days (all when None), oldest first."""
    since = _since(days, now)
    rows = [c for c in contests if since is None or as_utc(c.contest_time) >= since]
    return sorted(rows, key=lambda c: as_utc(c.contest_time))


@dataclass(frozen=True)
class RatingPoint:
    contest_id: int
    contest_name: str
    contest_time: datetime
    rating: int
    rating_before: int
    rating_delta: int
    rank: int


def rating_graph_points(contests: Iterable[ContestResult]) -> list[RatingPoint]:
    return [
        RatingPoint(
            contest_id=c.contest_id,
            contest_name=c.contest_name,
            contest_time=as_utc(c.contest_time),
            rating=c.rating_after,
            rating_before=c.rating_before,
            rating_delta=c.rating_delta,
            rank=c.rank,
        )
        for c in sorted(contests, key=lambda c: as_utc(c.contest_time))
    ]


# ---------------------------------------------------------------------------
# Problem solving
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HardestProblem:
    problem_id: str
    problem_name: str
    problem_rating: int
    link: str


@dataclass
class ProblemSolvingStats:
    total_solved: int = 0
    average_rating: int = 0
    average_per_day: float = 0.0
    hardest: HardestProblem | None = None
    per_rating: dict[int, int] = field(default_factory=dict)


def _problem_link(sub: SubmissionRecord) -> str:
    index, _, contest = sub.problem_id.partition("-")
    if contest and contest != "problemset":
        return f"{PROBLEM_URL}/{contest}/{index}"
    return f"{PROBLEM_URL}/{index}"


def problem_solving_stats(
    submissions: Sequence[SubmissionRecord],
    days: int | None = None,
    now: datetime | None = None,
) -> ProblemSolvingStats:
    """Totals, averages, hardest solved problem and per-rating counts.

    The per-day average divides by the span between first and last solve
    (at least one day), capped at ``days`` when a window is given.
    """
    solved = _first_solves(submissions, _since(days, now))
    if not solved:
        return ProblemSolvingStats()

    rated = [s for s in solved if s.problem_rating is not None]
    per_rating: dict[int, int] = {}
    for sub in rated:
        per_rating[sub.problem_rating] = per_rating.get(sub.problem_rating, 0) + 1

    hardest = None
    if rated:
        top = max(rated, key=lambda s: s.problem_rating)
        hardest = HardestProblem(
            problem_id=top.problem_id,
            problem_name=top.problem_name,
            problem_rating=top.problem_rating,
            link=_problem_link(top),
        )

    times = [as_utc(s.submitted_at) for s in solved]
    span_days = max(1, math.ceil((max(times) - min(times)).total_seconds() / 86400))
    divisor = min(days, span_days) if days else span_days

    return ProblemSolvingStats(
        total_solved=len(solved),
        average_rating=round(sum(s.problem_rating for s in rated) / len(rated)) if rated else 0,
        average_per_day=round(len(solved) / max(divisor, 1), 1),
        hardest=hardest,
        per_rating=dict(sorted(per_rating.items())),
    )


def average_problems_per_day_last_week(
    submissions: Sequence[SubmissionRecord],
    now: datetime | None = None,
) -> float:
    """Unique problems solved in the last 7 days divided by 7 (dashboard column)."""
    solved = _first_solves(submissions, _since(7, now))
    return round(len(solved) / 7, 1)


def submission_heatmap(
    submissions: Iterable[SubmissionRecord],
    days: int,
    now: datetime | None = None,
) -> dict[date, int]:
    """Count of all submissions (any verdict) per UTC day for the last ``days`` days."""
    if now is None:
        now = datetime.now(timezone.utc)
    today = as_utc(now).date()
    counts = {today - timedelta(days=offset): 0 for offset in range(days - 1, -1, -1)}
    for sub in submissions:
        day = as_utc(sub.submitted_at).date()
        if day in counts:
            counts[day] += 1
    return counts
