from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import sync_engine, Base

# Import middleware and error handlers
from app.common.middleware import OrgMiddleware, SecurityHeadersMiddleware
from app.common.exceptions import register_exception_handlers

# Import routers
from app.modules.auth.router import auth_router
from app.modules.organizations.router import organizations_router
from app.modules.taxes.router import taxes_router
from app.modules.parties.router import parties_router
from app.modules.products.router import products_router, product_categories_router
from app.modules.billing.router import invoices_router, purchases_router, purchase_orders_router, quotes_router
from app.modules.transactions.router import transactions_router
from app.modules.expenses.router import expenses_router

# Import models for table creation
import app.modules.auth.models
import app.modules.organizations.models
import app.modules.parties.models
import app.modules.products.models
import app.modules.billing.models
import app.modules.transactions.models
import app.modules.expenses.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="GST Billing API",
    description="Multi-tenant GST invoicing API: invoices, purchases, purchase orders and quotations",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

register_exception_handlers(app)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(OrgMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(organizations_router, prefix="/organizations", tags=["Organizations"])
app.include_router(taxes_router)
app.include_router(parties_router)
app.include_router(product_categories_router)
app.include_router(products_router)
app.include_router(invoices_router)
app.include_router(purchases_router)
app.include_router(purchase_orders_router)
app.include_router(quotes_router)
app.include_router(transactions_router)
app.include_router(expenses_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)


@app.get("/")
async def read_root():
    return {
        "message": "GST Billing API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("GST Billing API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("GST Billing API shutting down...")
