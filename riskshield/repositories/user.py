from riskshield.domain.user import User
from riskshield.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def team_for_project(self, project_manager_id: str | None) -> list[User]:
        """Users who hear about a project's certificates: its manager plus admins and risk managers."""
        users = await self.find_all()
        return [
            u for u in users
            if u.role in ("admin", "risk_manager") or (project_manager_id and u.id == project_manager_id)
        ]
