#=================================================================
# backoffice/main_app.py
# FastAPI application entry-point for the variation matrix engine.
#=================================================================

import logging, secrets

from fastapi import FastAPI, Depends, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from backoffice.config import settings
from backoffice.logging_filters import install_html_trim_filter
from backoffice.routes import router as variations_router
from backoffice.variations.errors import ApiError, ValidationError, extract_error_message

# --- FastAPI instance ---
app = FastAPI(
    title="Back-office Variation Matrix Engine",
    description="Variation matrix reconciliation, SKU generation and variation summaries.",
)

# --- Logging setup (console, INFO level) ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s"
)
logger = logging.getLogger("uvicorn.error")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
install_html_trim_filter()

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Simple HTTP Basic Auth for admin endpoints ---
security = HTTPBasic()

def verify_admin(credentials: HTTPBasicCredentials = Depends(security)):
    ok_user = secrets.compare_digest(credentials.username or "", settings.ADMIN_USER or "")
    ok_pass = secrets.compare_digest(credentials.password or "", settings.ADMIN_PASS or "")
    if not (ok_user and ok_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

# ---------------- Include routers ----------------
app.include_router(
    variations_router,                  # /api/variations/*
    dependencies=[Depends(verify_admin)],
)

# --- Root endpoint ---
@app.get("/")
async def home():
    return {"status": "running", "service": "Back-office Variation Matrix Engine"}

# --- Error mapping ---
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.message, "field": exc.field, "kind": exc.kind.value})

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    message = extract_error_message(exc, "Backend request failed")
    logger.warning("[API] upstream error on %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=502,
        content={"detail": message, "upstream_status": exc.status_code, "kind": exc.kind.value},
    )

# --- Global error handler (keeps full stack trace in logs) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Request failed: {str(exc)}"},
    )

#if __name__ == "__main__":
#    import uvicorn
#
#    uvicorn.run(app, host="0.0.0.0", port=8000)
