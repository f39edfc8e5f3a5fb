from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from travel_backoffice import __version__
from travel_backoffice.config import settings
from travel_backoffice.logging_config import configure_logging
from travel_backoffice.payment_templates import router as templates_router, audit_router
from travel_backoffice.payment_schedules import router as schedules_router, transactions_router
from travel_backoffice.trips import router as trips_router

configure_logging(settings.LOG_LEVEL)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="Travel Agency Back Office - Payment Schedules API",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    templates_router,
    prefix=f"{settings.API_V1_STR}/payment-templates",
    tags=["Payment Templates"]
)

app.include_router(
    audit_router,
    prefix=f"{settings.API_V1_STR}/payment-schedule-audit-log",
    tags=["Audit Log"]
)

app.include_router(
    schedules_router,
    prefix=f"{settings.API_V1_STR}/payment-schedules",
    tags=["Payment Schedules"]
)

app.include_router(
    transactions_router,
    prefix=f"{settings.API_V1_STR}/payment-transactions",
    tags=["Payment Transactions"]
)

app.include_router(
    trips_router,
    prefix=f"{settings.API_V1_STR}/trips",
    tags=["Trips"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Travel Agency Back Office API",
        "version": __version__,
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
