"""Checkout FastAPI application.

Serves the cart and order mutations and the dead-job operator endpoints, and
runs the fulfillment worker pool for as long as the app is up.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager

from checkout.domain import checkout
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

# PROTEAN_ENV selects the config overlay applied at init
checkout.init()

from checkout.api import cart_router, job_router, order_router  # noqa: E402
from checkout.config import PipelineSettings  # noqa: E402
from checkout.jobs.queue import JobQueue  # noqa: E402
from checkout.jobs.worker import WorkerPool  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = PipelineSettings.from_env()
    queue = JobQueue(settings)
    pool = WorkerPool(checkout, queue=queue, settings=settings)
    app.state.job_queue = queue
    app.state.worker_pool = pool

    pool.start()
    try:
        yield
    finally:
        pool.stop()


app = FastAPI(
    title="Checkout API",
    description="Carts, order placement and the fulfillment pipeline",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the checkout domain context for each request."""
    with checkout.domain_context():
        response = await call_next(request)
    return response


register_exception_handlers(app)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(job_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health(request: Request):
    pool = getattr(request.app.state, "worker_pool", None)
    return JSONResponse(
        content={
            "status": "ok",
            "domain": checkout.name,
            "workers_running": bool(pool and pool.running),
        }
    )
