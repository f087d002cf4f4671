from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from config import Settings
from crawler.service import CrawlService, InvalidCrawlRequest, SessionNotFound
from storage.base import CrawlStorage
from storage.memory_store import MemoryStore


class StartCrawlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: HttpUrl
    max_pages: Optional[int] = Field(default=None, alias="maxPages", ge=1, le=10_000)
    max_depth: int = Field(alias="maxDepth", ge=1, le=20)


class StartCrawlResponse(BaseModel):
    sessionId: str


def build_storage(settings: Settings) -> CrawlStorage:
    if settings.storage == "postgres":
        from db.postgres_store import PostgresStore

        return PostgresStore(settings.database_url)
    return MemoryStore()


def create_app(service: Optional[CrawlService] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    service = service or CrawlService(storage=build_storage(settings), settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.storage.connect()
        yield
        await service.shutdown()

    app = FastAPI(title="Site Crawler API", lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request data"})

    @app.exception_handler(InvalidCrawlRequest)
    async def invalid_crawl(request: Request, exc: InvalidCrawlRequest):
        return JSONResponse(status_code=400, content={"error": "Invalid request data", "detail": str(exc)})

    @app.exception_handler(SessionNotFound)
    async def not_found(request: Request, exc: SessionNotFound):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.post("/api/crawl/start", response_model=StartCrawlResponse)
    async def start_crawl(req: StartCrawlRequest):
        session_id = await service.start_crawl(str(req.url), max_pages=req.max_pages, max_depth=req.max_depth)
        return {"sessionId": session_id}

    @app.get("/api/crawl/{session_id}")
    async def get_progress(session_id: str):
        progress = await service.get_progress(session_id)
        return progress.to_dict()

    @app.post("/api/crawl/{session_id}/stop")
    async def stop_crawl(session_id: str):
        await service.stop_crawl(session_id)
        return {"success": True}

    @app.get("/api/crawl/{session_id}/export")
    async def export_csv(session_id: str):
        data = await service.export_csv(session_id)
        return Response(
            content=data,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="crawl-results.csv"'},
        )

    @app.get("/api/crawl/{session_id}/pages")
    async def list_pages(session_id: str, status_code: Optional[int] = Query(default=None, alias="statusCode")):
        pages = await service.list_pages(session_id, status_code)
        return [p.to_dict() for p in pages]

    @app.get("/api/crawl/{session_id}/duplicates")
    async def duplicates(session_id: str):
        return await service.get_duplicates(session_id)

    return app


app = create_app()
