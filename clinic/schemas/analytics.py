from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel

from clinic.analytics.buckets import Granularity
from clinic.analytics.trends import CompareMode


class AnalyticsWindow(BaseModel):
    date_from: date
    date_to: date  # inclusive, local calendar
    timezone: str


class TrendOut(BaseModel):
    direction: str
    percentage: float


class SessionMetrics(BaseModel):
    total_sessions: int
    completed_sessions: int
    cancelled_sessions: int
    no_show_sessions: int
    rescheduled_sessions: int
    completion_rate: float  # 0..100
    cancellation_rate: float
    no_show_rate: float
    reschedule_rate: float


class StatusDistribution(BaseModel):
    total: int
    counts: dict[str, int]
    rates: dict[str, float]


# -- sessions ---------------------------------------------------------------


class UtilizationSummary(BaseModel):
    total_therapists: int
    average_utilization: float
    max_utilization: float
    min_utilization: float
    overloaded_therapists: int  # > 90%
    underutilized_therapists: int  # < 50%
    average_sessions_per_therapist: float
    average_hours_per_therapist: float


class OverviewTotals(BaseModel):
    sessions: int
    therapists: int
    services: int


class SessionsOverviewResponse(BaseModel):
    window: AnalyticsWindow
    totals: OverviewTotals
    metrics: SessionMetrics
    status_distribution: StatusDistribution
    utilization: UtilizationSummary
    trend: TrendOut


class PeriodMetrics(SessionMetrics):
    period: str


class PerformanceSummary(BaseModel):
    total_periods: int
    total_sessions: int
    average_sessions_per_period: float
    average_completion_rate: float
    average_cancellation_rate: float
    average_no_show_rate: float


class PerformanceResponse(BaseModel):
    window: AnalyticsWindow
    group_by: Granularity
    performance: list[PeriodMetrics]
    summary: PerformanceSummary
    trend: TrendOut


class UtilizationPeriod(BaseModel):
    period: str
    sessions: int
    hours: float


class TherapistUtilization(BaseModel):
    therapist_id: int
    therapist_name: str | None = None
    total_sessions: int
    total_hours: float
    session_utilization: float
    hour_utilization: float
    overall_utilization: float
    periods: list[UtilizationPeriod]


class UtilizationResponse(BaseModel):
    window: AnalyticsWindow
    group_by: Granularity
    utilization: list[TherapistUtilization]
    summary: UtilizationSummary


class TrendPoint(BaseModel):
    period: str
    count: int
    completed: int


class TrendsResponse(BaseModel):
    window: AnalyticsWindow
    group_by: Granularity
    trend: TrendOut
    data: list[TrendPoint]


class MetricChange(BaseModel):
    current: float
    comparison: float
    change: float
    percentage_change: float
    direction: str  # increase | decrease | stable


class PeriodData(BaseModel):
    date_from: date
    date_to: date
    data: SessionMetrics


class ComparativeResponse(BaseModel):
    mode: CompareMode
    current_period: PeriodData
    comparison_period: PeriodData
    comparison: dict[str, MetricChange]


# -- therapists ---------------------------------------------------------------


class MonthlyPerformance(BaseModel):
    month: str
    sessions: int
    completed_sessions: int
    completion_rate: float
    revenue: float
    average_satisfaction: float | None = None


class CategoryPerformance(BaseModel):
    sessions: int
    revenue: float


class TherapistPerformance(SessionMetrics):
    therapist_id: int
    therapist_name: str | None = None
    total_hours: float
    average_session_minutes: float
    total_revenue: float
    revenue_per_session: float
    revenue_per_hour: float
    sessions_per_day: float
    average_patient_satisfaction: float | None = None
    average_therapist_satisfaction: float | None = None
    by_category: dict[str, CategoryPerformance]
    monthly_trends: list[MonthlyPerformance]


class TherapistPerformanceResponse(BaseModel):
    window: AnalyticsWindow
    therapists: list[TherapistPerformance]


# -- workload -----------------------------------------------------------------


class WorkloadEntry(BaseModel):
    workload: dict[str, Any]
    alerts: list[dict[str, Any]]
    recommendations: list[str]
    projections: dict[str, dict[str, float]] | None = None


class WorkloadSummary(BaseModel):
    total_therapists: int
    total_sessions: int
    total_hours: float
    total_revenue: float
    average_utilization: float
    average_sessions_per_therapist: float
    average_hours_per_therapist: float
    total_alerts: int


class WorkloadResponse(BaseModel):
    window: AnalyticsWindow
    therapists: list[WorkloadEntry]
    summary: WorkloadSummary


# -- payments -----------------------------------------------------------------


class AmountBucket(BaseModel):
    count: int
    total: float


class MonthlyAmount(BaseModel):
    month: str
    count: int
    total: float


class TopParent(BaseModel):
    parent_id: int
    parent_name: str | None = None
    count: int
    total: float


class PaymentStatisticsResponse(BaseModel):
    total_payments: int
    total_amount: float
    average_amount: float
    payment_methods: dict[str, AmountBucket]
    payment_types: dict[str, AmountBucket]
    status_breakdown: dict[str, int]
    monthly_trends: list[MonthlyAmount]
    top_parents: list[TopParent]


# -- proposals ----------------------------------------------------------------


class ProposalValue(BaseModel):
    count: int
    total_value: float
    average_value: float


class ProposalPeriod(ProposalValue):
    period: str


class TherapistProposals(ProposalValue):
    therapist_id: int
    therapist_name: str | None = None


class ProposalSummary(BaseModel):
    total_proposals: int
    total_value: float
    average_value: float
    approval_rate: float
    rejection_rate: float
    review_rate: float  # approved + rejected
    average_processing_days: float


class ProposalStatisticsResponse(BaseModel):
    window: AnalyticsWindow
    group_by: Granularity
    summary: ProposalSummary
    status_distribution: StatusDistribution
    by_therapist: list[TherapistProposals]
    periods: list[ProposalPeriod]
    trend: TrendOut


# -- progress -----------------------------------------------------------------


class GoalStats(BaseModel):
    total: int
    completed: int
    completion_rate: float


class ProgressOverviewResponse(BaseModel):
    window: AnalyticsWindow
    total_entries: int
    unique_patients: int
    average_progress: float
    progress_statistics: dict[str, float]
    progress_distribution: dict[str, int]
    entry_types: StatusDistribution
    validation_status: StatusDistribution
    risk_levels: StatusDistribution
    goals: GoalStats
    trend: str
    domain_averages: dict[str, float | None]


class ProgressPeriod(BaseModel):
    period: str
    entries: int
    unique_patients: int
    average_progress: float
    goal_completion_rate: float
    domain_averages: dict[str, float | None]


class ProgressTrendsResponse(BaseModel):
    window: AnalyticsWindow
    group_by: Granularity
    trends: list[ProgressPeriod]
    volume_trend: TrendOut
    progress_direction: str
