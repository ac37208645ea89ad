from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from .. import audit
from ..auth import get_current_user, require_admin
from ..crud import list_contract_configs
from ..database import atomic, get_session
from ..models import ContractConfig, User
from ..schemas import ContractConfigBulk, ContractConfigRead, MessageResponse

router = APIRouter(prefix="/api/contract-configs", tags=["contract-configs"])


@router.get("", response_model=List[ContractConfigRead], dependencies=[Depends(get_current_user)])
def configs_list(session: Session = Depends(get_session)):
    return list_contract_configs(session)


# Cria ou atualiza em lote, numa única transação
@router.post("", response_model=MessageResponse)
def configs_upsert(payload: ContractConfigBulk, session: Session = Depends(get_session),
                   admin: User = Depends(require_admin)):
    with atomic(session):
        for item in payload.configs:
            group = item.contract_group.strip()
            config = session.exec(select(ContractConfig).where(ContractConfig.contract_group == group)).first()
            if config is None:
                config = ContractConfig(contract_group=group)
            config.cycle_start_day = item.cycle_start_day
            session.add(config)
            session.flush()
        summary = ", ".join(f"{c.contract_group.strip()}={c.cycle_start_day}" for c in payload.configs)
        audit.log_action(session, admin, audit.UPDATE_CONTRACT_CONFIGS, f"Configurações salvas: {summary}")
    return MessageResponse(message="Contract configurations saved.")
