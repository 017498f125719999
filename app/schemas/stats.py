# app/schemas/stats.py
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.meeting import UserRole


# --------------------------------------------------------------------------
# Per-person statistics (GET /stats/by-person)
# --------------------------------------------------------------------------

class StatusCounts(BaseModel):
    """
    Meeting counts per terminal status for one cohort.
    """

    total: int = Field(0, description="All meetings in the cohort, any status.")
    completed: int = Field(0, description="Meetings with status COMPLETED.")
    no_show: int = Field(0, description="Meetings with status NO_SHOW.")
    canceled: int = Field(0, description="Meetings with status CANCELED.")
    rescheduled: int = Field(0, description="Meetings with status RESCHEDULED.")


class RoleStats(StatusCounts):
    """
    Counts and rates for a user acting in one role (booker or seller).
    """

    show_rate: float = Field(
        0.0,
        description=(
            "completed / (completed + no_show). Canceled and rescheduled "
            "meetings are not part of the denominator. 0.0 when no meeting "
            "was either completed or missed."
        ),
        examples=[0.75],
    )
    no_show_rate: float = Field(
        0.0,
        description="no_show / (completed + no_show), 0.0 when empty.",
        examples=[0.25],
    )


class SellerRoleStats(RoleStats):
    """
    Seller-side statistics. Quality scores are only attributed to sellers.
    """

    avg_quality_score: float | None = Field(
        None,
        description=(
            "Mean quality score (1-5) over completed meetings with a score. "
            "null when there is no such meeting; null is not the same as 0."
        ),
        examples=[3.5],
    )
    quality_score_count: int = Field(
        0,
        description="Number of scored, completed meetings behind avg_quality_score.",
    )


class PersonInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool


class PersonStats(BaseModel):
    """
    Statistics for one user, split by role.

    `combined` sums the two roles without de-duplication: a user who is both
    booker and seller on the same meeting counts twice there.
    """

    user: PersonInfo
    as_booker: RoleStats
    as_seller: SellerRoleStats
    combined: StatusCounts


class PersonStatsFilters(BaseModel):
    user_ids: list[str] | None = None
    start_date: date | None = None
    end_date: date | None = None
    role: str = "both"
    limit: int = 50
    offset: int = 0


class PersonStatsReport(BaseModel):
    """
    Response of the by-person endpoint.
    """

    count: int = Field(..., description="Number of entries in `stats`.")
    stats: list[PersonStats]
    team_avg_quality_score: float | None = Field(
        None,
        description=(
            "Quality average across all listed sellers, weighted by each "
            "seller's number of scored meetings."
        ),
    )
    team_quality_score_count: int = Field(
        0, description="Total number of scored meetings behind the team average."
    )
    filters: PersonStatsFilters


# --------------------------------------------------------------------------
# Period statistics (GET /stats/summary, /stats/overview)
# --------------------------------------------------------------------------

class PeriodStats(BaseModel):
    """
    Statistics for one period and (optionally) one target user, computed
    over the meetings the requester is allowed to see.
    """

    period: str = Field(..., examples=["month"])
    user_id: str | None = Field(
        None, description="Target user, or null for every visible meeting."
    )
    range_start: datetime | None = Field(
        None, description="Inclusive UTC start of the status-breakdown window."
    )
    range_end: datetime | None = Field(
        None, description="Exclusive UTC end of the status-breakdown window."
    )

    today_bookings: int = Field(0, description="Meetings booked today (by booking date).")
    week_bookings: int = Field(0, description="Meetings booked this week (by booking date).")
    month_bookings: int = Field(0, description="Meetings booked this month (by booking date).")
    total_bookings: int = Field(0, description="All visible meetings, any booking date.")

    total_meetings: int = Field(
        0, description="Meetings scheduled to start inside the window, any status."
    )
    booked: int = Field(0, description="Still BOOKED, by scheduled start.")
    completed: int = Field(0, description="COMPLETED, by scheduled start.")
    no_shows: int = Field(0, description="NO_SHOW, by scheduled start.")
    canceled: int = Field(0, description="CANCELED, by scheduled start.")
    rescheduled: int = Field(0, description="RESCHEDULED, by scheduled start.")

    show_rate: float = Field(0.0, description="completed / (completed + no_shows).")
    no_show_rate: float = Field(0.0, description="no_shows / (completed + no_shows).")
    avg_quality_score: float | None = Field(
        None, description="Mean quality score, null when there is no scored meeting."
    )
    quality_score_count: int = 0


# --------------------------------------------------------------------------
# Trends (GET /stats/trends)
# --------------------------------------------------------------------------

class TrendPoint(BaseModel):
    date: str = Field(..., description="ISO calendar date (YYYY-MM-DD).", examples=["2025-11-10"])
    bookings: int = Field(0, description="Meetings scheduled to start on this day.")
    completed: int = 0
    no_shows: int = 0


class TrendSeries(BaseModel):
    """
    Sparse daily series: days without meetings have no entry.
    """

    days: int
    user_id: str | None = None
    count: int
    trends: list[TrendPoint]


# --------------------------------------------------------------------------
# Comparison (GET /stats/comparison)
# --------------------------------------------------------------------------

class PersonalFigures(BaseModel):
    show_rate: float
    quality: float | None
    total_meetings: int
    completed: int
    no_shows: int


class TeamAverageFigures(BaseModel):
    show_rate: float
    quality: float | None
    total_meetings: int = Field(
        ..., description="Team meeting count divided by the number of active users."
    )


class Comparison(BaseModel):
    """
    A user's own month figures next to team-wide aggregates. No per-peer data.
    """

    personal: PersonalFigures
    team_average: TeamAverageFigures
    total_users: int = Field(..., description="Number of active users in the team.")


class StatsOverview(BaseModel):
    today: PeriodStats
    week: PeriodStats
    month: PeriodStats
    total: PeriodStats
    trends: list[TrendPoint]
    comparison: Comparison | None = None
