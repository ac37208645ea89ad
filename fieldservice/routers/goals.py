from typing import List

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from ..auth import require_admin
from ..crud import list_goals, save
from ..database import get_session
from ..errors import NotFoundError
from ..models import Goal, Service
from ..schemas import GoalCreate, GoalRead, GoalUpdate

router = APIRouter(prefix="/api/goals", tags=["goals"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[GoalRead])
def goals_list(session: Session = Depends(get_session)):
    return [GoalRead.model_validate(g) for g in list_goals(session)]


@router.post("", response_model=GoalRead, status_code=201)
def goals_create(payload: GoalCreate, session: Session = Depends(get_session)):
    if not session.get(Service, payload.service_id):
        raise NotFoundError("Service", payload.service_id)
    goal = save(session, Goal(**payload.model_dump()))
    return GoalRead.model_validate(goal)


@router.put("/{goal_id}", response_model=GoalRead)
def goals_update(goal_id: int, payload: GoalUpdate, session: Session = Depends(get_session)):
    goal = session.get(Goal, goal_id)
    if not goal:
        raise NotFoundError("Goal", goal_id)
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "service_id" in data and not session.get(Service, data["service_id"]):
        raise NotFoundError("Service", data["service_id"])
    for k, v in data.items():
        setattr(goal, k, v)
    return GoalRead.model_validate(save(session, goal))


@router.delete("/{goal_id}", status_code=204)
def goals_delete(goal_id: int, session: Session = Depends(get_session)):
    goal = session.get(Goal, goal_id)
    if not goal:
        raise NotFoundError("Goal", goal_id)
    session.delete(goal)
    session.commit()
    return Response(status_code=204)
