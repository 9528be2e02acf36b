from snaplake.api.routes.health import router as health_router
from snaplake.api.routes.query import router as query_router
from snaplake.api.routes.snapshots import router as snapshots_router
from snaplake.api.routes.tables import router as tables_router

__all__ = ["health_router", "query_router", "snapshots_router", "tables_router"]
