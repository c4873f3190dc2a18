"""API routers."""

from funeral_core.routers.cases import router as cases_router
from funeral_core.routers.invitations import router as invitations_router
from funeral_core.routers.leads import router as leads_router
from funeral_core.routers.notes import router as notes_router
from funeral_core.routers.policies import router as policies_router
from funeral_core.routers.templates import router as templates_router

__all__ = [
    "cases_router",
    "invitations_router",
    "leads_router",
    "notes_router",
    "policies_router",
    "templates_router",
]
