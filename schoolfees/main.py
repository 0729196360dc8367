from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolfees.api.v1.auth.router import router as auth_router
from schoolfees.api.v1.dashboard.router import router as dashboard_router
from schoolfees.api.v1.payments.router import router as payments_router
from schoolfees.api.v1.sms.router import router as sms_router
from schoolfees.api.v1.students.router import router as students_router
from schoolfees.core.config import settings
from schoolfees.core.exceptions import ServiceError
from schoolfees.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Fees Backend")

    # Cookies are used for the session, so origins must be explicit in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    # Routers
    app.include_router(auth_router)
    app.include_router(students_router)
    app.include_router(payments_router)
    app.include_router(dashboard_router)
    app.include_router(sms_router)

    return app


app = create_app()
