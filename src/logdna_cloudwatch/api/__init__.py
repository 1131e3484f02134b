"""
API endpoints package.

Contains FastAPI routers for the HTTP hosting surface:
- /invoke - Forward one CloudWatch Logs event
- /metrics - Prometheus metrics
- /healthz - Liveness check
"""
from .healthz import router as healthz_router
from .invoke import router as invoke_router
from .metrics import router as metrics_router

__all__ = ["healthz_router", "invoke_router", "metrics_router"]
