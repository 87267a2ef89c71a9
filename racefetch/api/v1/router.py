from fastapi import APIRouter

from racefetch.api.v1 import sitemap

api_router = APIRouter(prefix="/v1")

api_router.include_router(sitemap.router, prefix="/sitemap", tags=["Sitemap"])
