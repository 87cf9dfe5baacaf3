import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tributei.config import settings
from tributei.health import router as health_router
from tributei.products.routes import router as products_router
from tributei.taxes.routes import router as taxes_router
from tributei.invoices.routes import router as invoices_router
from tributei.error_handler import exception_handler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Set log level for application modules to INFO
logging.getLogger('tributei').setLevel(logging.INFO)

# Keep external libraries at WARNING to reduce noise
logging.getLogger('uvicorn').setLevel(logging.WARNING)
logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

app = FastAPI(
    title="Tributei API",
    version="1.0.0",
    docs_url="/docs" if settings.ENV == "development" else None,
)

# CORS Configuration
if settings.ENV == "development":
    origins = ["http://localhost:3000", "http://localhost:5173"]  # Vite dev server
else:
    origins = [settings.WEB_APP_URL]  # Production domain

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

exception_handler(app)

app.include_router(health_router, tags=["health"])
app.include_router(products_router, prefix="/api/products", tags=["products"])
app.include_router(taxes_router, prefix="/api/taxes", tags=["taxes"])
app.include_router(invoices_router, prefix="/api/invoices", tags=["invoices"])
