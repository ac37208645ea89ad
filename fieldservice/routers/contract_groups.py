from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import get_current_user, require_admin
from ..database import get_session
from ..models import User
from ..schemas import ContractGroupDelete, ContractGroupRename, ContractGroupSummary, DeleteResult, RenameResult
from ..services import contract_groups as svc

router = APIRouter(prefix="/api/contract-groups", tags=["contract-groups"])


@router.get("", response_model=List[ContractGroupSummary], dependencies=[Depends(get_current_user)])
def groups_list(session: Session = Depends(get_session)):
    return svc.list_contract_groups(session)


@router.put("/{old_name}", response_model=RenameResult)
def groups_rename(old_name: str, payload: ContractGroupRename, session: Session = Depends(get_session),
                  admin: User = Depends(require_admin)):
    return svc.rename_contract_group(session, old_name, payload.new_name, admin)


@router.delete("/{name}", response_model=DeleteResult)
def groups_delete(name: str, payload: ContractGroupDelete, session: Session = Depends(get_session),
                  admin: User = Depends(require_admin)):
    return svc.delete_contract_group(session, name, payload.password, admin.id)
