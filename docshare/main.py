import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docshare.api.routes import router
from docshare.config import CORS_ORIGINS, LOG_LEVEL
from docshare.core.exceptions import register_exception_handlers
from docshare.db import init_db

app = FastAPI(title="Document Sharing API", version="1.0.0")

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("docshare")

origins = [origin.strip() for origin in CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()

app.include_router(router)
register_exception_handlers(app)
