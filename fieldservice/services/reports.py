"""
Monthly performance numbers built from the effective measurement of each
record (admin override when present, else the measured area).
"""
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Tuple

from sqlmodel import Session, select

from ..errors import ValidationError
from ..models import ContractConfig, Goal, ServiceRecord
from ..schemas import ChartDataset, GoalProgress, PerformanceGraph

COLORS = ["#352f91", "#4a5568", "#28a745", "#dc3545", "#ffc107", "#17a2b8"]


def parse_month(month: str) -> Tuple[int, int]:
    try:
        parsed = datetime.strptime(month, "%Y-%m")
    except ValueError:
        raise ValidationError(f"Invalid month '{month}', expected YYYY-MM")
    return parsed.year, parsed.month


def cycle_bounds(month: str, cycle_start_day: int = 1) -> Tuple[datetime, datetime]:
    """
    [start, end) of the billing cycle labelled ``month``: from
    ``cycle_start_day`` of that month up to the same day of the next one.
    """
    year, mon = parse_month(month)
    day = min(max(cycle_start_day or 1, 1), 28)
    start = datetime(year, mon, day)
    end = datetime(year + 1, 1, day) if mon == 12 else datetime(year, mon + 1, day)
    return start, end


def performance_graph(session: Session, start_date: datetime, end_date: datetime,
                      contract_groups: List[str]) -> PerformanceGraph:
    if not contract_groups:
        raise ValidationError("At least one contract group is required")
    if end_date < start_date:
        raise ValidationError("endDate must not be before startDate")

    records = session.exec(
        select(ServiceRecord)
        .where(
            ServiceRecord.contract_group.in_(contract_groups),
            ServiceRecord.start_time >= start_date,
            ServiceRecord.start_time <= end_date,
        )
        .order_by(ServiceRecord.start_time)
    ).all()

    # {"2025-09": {"CIDADE A": 1200.0, ...}, ...}
    monthly: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for rec in records:
        value = rec.effective_measurement
        if not value or value <= 0:
            continue
        monthly[rec.start_time.strftime("%Y-%m")][rec.contract_group] += value

    labels = sorted(monthly)
    datasets = []
    for index, group in enumerate(contract_groups):
        color = COLORS[index % len(COLORS)]
        datasets.append(ChartDataset(
            label=group,
            data=[monthly[label].get(group, 0.0) for label in labels],
            background_color=color + "80",
            border_color=color,
        ))
    return PerformanceGraph(labels=labels, datasets=datasets)


def goals_progress(session: Session, month: str) -> List[GoalProgress]:
    parse_month(month)
    cycle_days = {c.contract_group: c.cycle_start_day for c in session.exec(select(ContractConfig)).all()}
    goals = session.exec(select(Goal).where(Goal.month == month).order_by(Goal.contract_group, Goal.id)).all()

    progress = []
    for goal in goals:
        start, end = cycle_bounds(month, cycle_days.get(goal.contract_group, 1))
        records = session.exec(
            select(ServiceRecord).where(
                ServiceRecord.contract_group == goal.contract_group,
                ServiceRecord.service_id == goal.service_id,
                ServiceRecord.start_time >= start,
                ServiceRecord.start_time < end,
            )
        ).all()
        achieved = sum(r.effective_measurement or 0.0 for r in records)
        percent = round(achieved / goal.target_area * 100, 2) if goal.target_area else 0.0
        progress.append(GoalProgress(
            goal_id=goal.id,
            contract_group=goal.contract_group,
            service_id=goal.service_id,
            service_name=goal.service.name if goal.service else None,
            month=month,
            cycle_start=start,
            cycle_end=end,
            target_area=goal.target_area,
            achieved_area=achieved,
            percent=percent,
        ))
    return progress
