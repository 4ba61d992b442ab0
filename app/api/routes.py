import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response, status

from app.core.config import settings
from app.core.errors import DecodeError
from app.schemas import LogStats, ProxyLogEntry, RecentLogs
from app.services.proxy import ProxyService, raw_query_value
from app.storage import db as log_db

router = APIRouter()

log = logging.getLogger(__name__)

def get_proxy_service(request: Request) -> ProxyService:
    return request.app.state.proxy_service

@router.get("/proxy")
async def proxy(
    request: Request,
    background_tasks: BackgroundTasks,
    url: str = Query(..., description="Percent-encoded target URL"),
    service: ProxyService = Depends(get_proxy_service),
):
    """
    Fetch ``url`` and return it with its links routed back through /proxy.

    Non-2xx origin responses and non-HTML content are passed through as-is.
    """
    # the service decodes; hand it the parameter as sent, not FastAPI's decoded copy
    raw = raw_query_value(request.url.query, "url")
    try:
        result = await service.handle(raw if raw is not None else url)
    except DecodeError as e:
        log.warning("Rejected url parameter %r: %s", url, e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if settings.PROXY_LOG_ENABLED:
        background_tasks.add_task(log_db.record_quietly, url)

    return Response(
        content=result.body,
        status_code=result.status_code,
        headers={"content-type": result.content_type},
    )

@router.get("/logs/stats", response_model=LogStats)
async def log_statistics():
    """Request log statistics"""
    return log_db.get_stats()

@router.get("/logs/recent", response_model=RecentLogs)
async def recent_logs(limit: int = Query(50, ge=1, le=1000)):
    """Most recently proxied URLs, newest first"""
    return RecentLogs(entries=[ProxyLogEntry(**row) for row in log_db.recent(limit)])

@router.delete("/logs/clear")
async def clear_logs():
    """Clear all request log entries"""
    try:
        log_db.clear_all()
        return {"message": "Request log cleared successfully"}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear request log: {str(e)}"
        )

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "HTML Rewriting Proxy"}
