"""Company profile service."""


from sqlalchemy.ext.asyncio import AsyncSession

from riskshield.core.exceptions import BadRequestError, ConflictError, NotFoundError
from riskshield.domain.company import Company
from riskshield.domain.user import User
from riskshield.repositories.account import AccountRepository
from riskshield.schemas.company import CompanyUpdate
from riskshield.services.abn import validate_abn
from riskshield.services.audit import AuditService

class CompanyService:
    def __init__(self, session: AsyncSession, user: User):
        self._session = session
        self._user = user
        self._accounts = AccountRepository(session)

    async def get(self) -> Company:
        company = await self._accounts.get_company(self._user.company_id)
        if company is None:
            raise NotFoundError("Company")
        return company

    async def update(self, data: CompanyUpdate) -> Company:
        company = await self.get()
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise BadRequestError("Company name cannot be empty")
        if "abn" in changes:
            abn, error = validate_abn(changes["abn"])
            if error:
                raise BadRequestError(error)
            other = await self._accounts.get_company_by_abn(abn)
            if other is not None and other.id != company.id:
                raise ConflictError("A company with this ABN is already registered")
            changes["abn"] = abn

        for key, value in changes.items():
            setattr(company, key, value)
        await self._session.flush()
        await AuditService(self._session, company.id).record(
            "update", "company", company.id, user_id=self._user.id, details={"fields": sorted(changes)}
        )
        return company
