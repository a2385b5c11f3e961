"""FastAPI application setup for WeatherGuide."""

from fastapi import FastAPI

from weatherguide.api import router as api_router

app = FastAPI(title="WeatherGuide")

# API routes
app.include_router(api_router, prefix="/v1")
