"""
Company module - providers scoped to the module, one undecorated controller.
"""

from typing import Annotated, Any, Dict, Optional

from nidus import AppModule, HttpContext, HttpError, HttpGet, HttpPost, HttpPut, Inject, Injectable

from .repo import CompanyRepoMemory


@Injectable()
class CompanyService:
    def __init__(self, repo: Annotated[CompanyRepoMemory, Inject("CompanyRepo")]):
        self.repo = repo

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if "id" not in data:
            raise HttpError(400, "Company id is required")
        return await self.repo.create(dict(data))

    async def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        return await self.repo.get(company_id)

    async def update(self, company_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.repo.update(company_id, data)


# No @Controller: collected at bootstrap and mounted at the module path.
class CompanyController:
    def __init__(self, companies: Annotated[CompanyService, Inject("CompanyService")]):
        self.companies = companies

    @HttpPost("/")
    async def create(self, ctx: HttpContext):
        ctx.res.created(await self.companies.create(ctx.req.body))

    @HttpGet("/:id")
    async def get(self, ctx: HttpContext):
        company = await self.companies.get(ctx.req.params["id"])
        if company is None:
            raise HttpError(404, "Company not found")
        ctx.res.json(company)

    @HttpPut("/:id")
    async def update(self, ctx: HttpContext):
        company = await self.companies.update(ctx.req.params["id"], ctx.req.body)
        if company is None:
            raise HttpError(404, "Company not found")
        ctx.res.json(company)


def create_company_module() -> AppModule:
    return AppModule(
        path="/companies",
        providers=[
            {"key": "CompanyService", "provide": CompanyService},
            {"key": "CompanyRepo", "provide": CompanyRepoMemory},
        ],
        controllers=[CompanyController],
    )
