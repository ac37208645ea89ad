from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..auth import get_current_user
from ..database import get_session
from ..models import as_naive_utc
from ..schemas import GoalProgress, PerformanceGraph
from ..services import reports as svc

router = APIRouter(prefix="/api/reports", tags=["reports"], dependencies=[Depends(get_current_user)])


@router.get("/performance-graph", response_model=PerformanceGraph)
def performance_graph(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    contract_groups: List[str] = Query(..., alias="contractGroups"),
    session: Session = Depends(get_session),
):
    return svc.performance_graph(session, as_naive_utc(start_date), as_naive_utc(end_date), contract_groups)


@router.get("/goals-progress", response_model=List[GoalProgress])
def goals_progress(month: str, session: Session = Depends(get_session)):
    return svc.goals_progress(session, month)
