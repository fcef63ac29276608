from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.exceptions import register_exception_handlers
from app.startup import configure_startup_logging, run_startup_checks

# ========== Spatial Layouts ==========
from modules.layouts.routers.grid_layout_router import router as grid_layout_router
from modules.layouts.routers.floor_plan_router import router as floor_plan_router

configure_startup_logging()

app = FastAPI(
    title="POS Back Office - Spatial Layout API",
    description="""
    Product grid layouts and restaurant floor plans for the POS back office.

    ## Features

    * **Grid Layouts** - Per-till and shared product grid arrangements with one default per scope
    * **Layout Resolution** - Explicit choice, till default, shared default, built-in grid
    * **Layout Cloning** - Copy a layout to another till
    * **Floor Plans** - Rooms and the tables placed on them, with status tracking
    """,
    version="1.0.0",
)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(grid_layout_router, prefix="/api")
app.include_router(floor_plan_router, prefix="/api")


# Startup events
@app.on_event("startup")
async def startup_event():
    """Initialize services on application startup"""
    await run_startup_checks()


@app.get("/")
def read_root():
    return {"message": "Spatial layout backend is running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
