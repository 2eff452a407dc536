"""
Main FastAPI application entry point.
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from freightdesk.api import auth, clients, exports, manifest_lists, manifests, shipping_rates
from freightdesk.db.database import engine, Base, settings
from freightdesk.services.errors import DomainError, domain_error_handler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Freightdesk Courier Manifest Platform",
    description="Shipping rates, manifests, delivery confirmation and invoicing",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DomainError, domain_error_handler)

# Include routers
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])
app.include_router(clients.plans_router, prefix="/api/shipping-plans", tags=["shipping-plans"])
app.include_router(shipping_rates.router, prefix="/api", tags=["shipping-rates"])
app.include_router(manifests.router, prefix="/api/manifests", tags=["manifests"])
app.include_router(manifest_lists.router, prefix="/api/manifest-lists", tags=["manifest-lists"])
app.include_router(exports.router, prefix="/api/manifest", tags=["exports"])


@app.get("/")
async def root():
    return {"message": "Freightdesk Courier Manifest Platform API"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
