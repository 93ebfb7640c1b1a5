"""
Module: savings_kernel.selectors.deposit_selector
Responsibility: Role-scoped deposit listings.
Architecture position: Kernel > Selectors.

Visibility:
    Admin    -> every deposit of the company
    Manager  -> deposits collected by the Manager's agents
    Agent    -> deposits the Agent collected
    User     -> the client's own deposits
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import false, select
from sqlalchemy.orm import Session

from savings_kernel.domain.roles import Actor, Role
from savings_kernel.models.deposit import Deposit
from savings_kernel.selectors.base import BaseSelector
from savings_kernel.selectors.scope_selector import Scope


class DepositSelector(BaseSelector[Deposit]):

    def __init__(self, session: Session):
        super().__init__(session)

    def get(self, deposit_id: UUID) -> Deposit | None:
        return self.session.get(Deposit, deposit_id)

    def for_actor(
        self,
        actor: Actor,
        scope: Scope,
        account_id: UUID | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Deposit]:
        """
        Deposits visible to ``actor``, newest first.

        ``date_from`` is inclusive and ``date_to`` exclusive.  An actor with
        an unknown role sees nothing.
        """
        stmt = select(Deposit).where(Deposit.company_id == actor.company_id)

        match actor.resolved_role:
            case Role.ADMIN:
                pass
            case Role.MANAGER:
                stmt = stmt.where(Deposit.collected_by_id.in_(list(scope.agents)))
            case Role.AGENT:
                stmt = stmt.where(Deposit.collected_by_id == actor.id)
            case Role.USER:
                stmt = stmt.where(Deposit.user_id == actor.id)
            case None:
                stmt = stmt.where(false())

        if account_id is not None:
            stmt = stmt.where(Deposit.account_id == account_id)
        if date_from is not None:
            stmt = stmt.where(Deposit.deposit_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Deposit.deposit_date < date_to)

        stmt = stmt.order_by(Deposit.deposit_date.desc(), Deposit.created_at.desc())
        return list(self.session.execute(stmt).scalars())
