"""
Health check and statistics endpoints
"""
from datetime import datetime, timezone

from fastapi import APIRouter

from classchat.core.config import settings
from classchat.core.database import check_database_health, get_query_stats
from classchat.services import chat_service

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    """Health check endpoint"""
    db_healthy = check_database_health()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": "up" if db_healthy else "down",
            "relay": "up" if chat_service.broadcaster.relay is not None else "disabled",
        },
        "websocket": {
            "active_connections": len(chat_service.broadcaster.connections),
        },
    }


@router.get("/stats/websocket")
def get_websocket_stats():
    """Get WebSocket statistics"""
    return chat_service.broadcaster.get_stats()


@router.get("/stats/queries")
def get_query_statistics():
    """Get query execution statistics"""
    stats = get_query_stats()

    total = stats['total_queries']
    slow = stats['slow_queries']

    return {
        **stats,
        "slow_query_percentage": round((slow / total * 100) if total > 0 else 0, 2)
    }
