from typing import Any, Dict, List, Optional

from nidus import Injectable


@Injectable()
class CompanyRepoMemory:
    def __init__(self):
        self.companies: List[Dict[str, Any]] = []

    async def create(self, company: Dict[str, Any]) -> Dict[str, Any]:
        self.companies.append(company)
        return company

    async def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.companies if c["id"] == company_id), None)

    async def update(self, company_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for index, company in enumerate(self.companies):
            if company["id"] == company_id:
                self.companies[index] = {**company, **data, "id": company_id}
                return self.companies[index]
        return None
