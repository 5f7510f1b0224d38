import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import auth, belajar, guru, sekolah
from app.core.config import get_settings

settings = get_settings()

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)

app = FastAPI(
    title=settings.app_name,
    description="Learning map, quiz progress and report cards for IPAS students",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:5173",  # Vite dev server
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers (sekolah last: its /{sekolah_id}/kelas path is a bare parameter)
app.include_router(auth.router)
app.include_router(belajar.router)
app.include_router(guru.router)
app.include_router(sekolah.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "docs": "/docs",
    }
