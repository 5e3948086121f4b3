"""
Health Connect consent engine - FastAPI Application
Runs permission requests as server-side consent sessions
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import structlog

from pydantic import BaseModel

from .config import get_consent_config
from .constants import SERVICE_NAME, SERVICE_VERSION
from .consent.manager import ConsentFlowManager, PermissionRequest, FlowEventRequest
from .exceptions import (
    InvalidFlowEventError,
    PermissionClassificationError,
    SessionNotFoundError,
    ValidationError,
)
from .platform.storage import PermissionStorage
from .utils.validators import validate_permission_identifiers

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Global settings
settings = get_consent_config()

# Initialize services
permission_platform = None
flow_manager = None


class ConsentConfigOut(BaseModel):
    """Feature flags and environment settings exposed to ops tooling"""

    history_read_enabled: bool
    background_read_enabled: bool
    skin_temperature_enabled: bool
    planned_exercise_enabled: bool
    session_types_enabled: bool
    personal_health_records_enabled: bool
    health_platform_available: bool
    debug_mode: bool
    log_level: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    global permission_platform, flow_manager

    logger.info("Starting Health Connect consent engine", version=SERVICE_VERSION)

    try:
        # Initialize services only if not already provided (for testing/injection)
        if permission_platform is None:
            permission_platform = PermissionStorage()
        if flow_manager is None:
            flow_manager = ConsentFlowManager(permission_platform)

        logger.info("Consent services initialized")

    except Exception as e:
        logger.error("Failed to initialize consent services", error=str(e))

    yield

    logger.info("Shutting down Health Connect consent engine")

# Create FastAPI app
app = FastAPI(
    title="Health Connect Consent Engine",
    description="Sequenced consent screens and grant commits for health permission requests",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "components": {
            "permission_platform": permission_platform is not None,
            "flow_manager": flow_manager is not None,
        },
        "active_requests": len(flow_manager.flows) if flow_manager else 0,
    }


@app.get("/config", response_model=ConsentConfigOut)
async def get_config():
    """Return the feature flags that decide which permissions are offered"""
    return ConsentConfigOut(**settings.model_dump(include=set(ConsentConfigOut.model_fields)))


@app.post("/permissions/requests")
async def start_permission_request(request: PermissionRequest):
    """Start a permission request and return the first action"""
    if not flow_manager:
        raise HTTPException(status_code=503, detail="Consent flow manager not available")

    try:
        identifiers = validate_permission_identifiers(request.requested_permissions)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    try:
        return await flow_manager.start_request(request.target_package, identifiers)
    except Exception as e:
        logger.error("Failed to start permission request",
                     package_name=request.target_package, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/permissions/requests/{session_id}")
async def get_permission_request(session_id: str):
    """Current screen and result of a permission request"""
    if not flow_manager:
        raise HTTPException(status_code=503, detail="Consent flow manager not available")

    try:
        return await flow_manager.get_state(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())


@app.post("/permissions/requests/{session_id}/events")
async def dispatch_event(session_id: str, event: FlowEventRequest):
    """Apply a user action to a running permission request"""
    if not flow_manager:
        raise HTTPException(status_code=503, detail="Consent flow manager not available")

    try:
        result = await flow_manager.dispatch(session_id, event)
        logger.info("Flow event applied", session_id=session_id, event_type=event.type)
        return result
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except InvalidFlowEventError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except (ValidationError, PermissionClassificationError) as e:
        raise HTTPException(status_code=400, detail=e.to_dict())


@app.delete("/permissions/requests/{session_id}")
async def close_permission_request(session_id: str):
    """Forget a permission request"""
    if not flow_manager:
        raise HTTPException(status_code=503, detail="Consent flow manager not available")

    if not await flow_manager.close(session_id):
        raise HTTPException(status_code=404, detail=SessionNotFoundError(session_id).to_dict())
    return {"status": "closed", "session_id": session_id}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Health Connect Consent Engine",
        "version": SERVICE_VERSION,
        "status": "operational",
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
