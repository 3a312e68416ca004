from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .entities import router as entities_router
from .system import router as system_router

app = FastAPI(
    title="Layer Art Projection API",
    description="Read-only lookups over the projected layer art entity graph",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Add routes
app.include_router(entities_router)
app.include_router(system_router)

@app.get("/")
async def root():
    return {
        "name": "Layer Art Projection API",
        "version": "1.0.0",
        "status": "running"
    }
