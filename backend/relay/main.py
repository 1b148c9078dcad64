import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay.core.config import Settings, get_settings
from relay.core.errors import plain_text_http_exception_handler
from relay.middleware.body_size import BodySizeLimitMiddleware
from relay.middleware.request_logging import RequestLoggingMiddleware
from relay.services import diagnostics, verification
from relay.services.forwarder import ConfigurationError, ForwardingError, forward_event, new_client
from relay.services.payload import InvalidBody, read_payload

SERVICE_NAME = "Meta to Retool Webhook Middleware"

EVENT_RECEIVED = "EVENT_RECEIVED"
EVENT_RECEIVED_BUT_PROCESSING_FAILED = "EVENT_RECEIVED_BUT_PROCESSING_FAILED"
INVALID_EVENT_BUT_ACKNOWLEDGED = "INVALID_EVENT_BUT_ACKNOWLEDGED"
INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
SERVER_CONFIGURATION_ERROR = "SERVER_CONFIGURATION_ERROR"

logger = logging.getLogger(__name__)

router = APIRouter()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def log_config_status(settings: Settings) -> None:
    status_map = settings.config_status()
    logger.info("Environment variables status:")
    logger.info(f"- VERIFY_TOKEN: {status_map['verifyToken']}")
    logger.info(f"- RETOOL_WEBHOOK_URL: {status_map['retoolWebhook']}")
    logger.info(f"- RETOOL_API_KEY: {status_map['retoolApiKey']}")


# ---------- dependencies ----------
def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def http_client(request: Request) -> httpx.AsyncClient | None:
    # None when the host skipped the lifespan; forward_event then opens its own
    return getattr(request.app.state, "http_client", None)


# ---------- status ----------
def service_info(settings: Settings) -> dict:
    return {
        "name": SERVICE_NAME,
        "status": "running",
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.node_env,
        "config": settings.config_status(),
    }


@router.get("/", response_class=HTMLResponse)
async def index(settings: Settings = Depends(app_settings)):
    info = service_info(settings)
    logger.info(f"Health check accessed: {info}")
    config = info["config"]
    return f"""<h1>{info['name']}</h1>
<p>Status: {info['status']}</p>
<p>Timestamp: {info['timestamp']}</p>
<p>Environment: {info['environment']}</p>
<h2>Configuration:</h2>
<ul>
  <li>Verify Token: {config['verifyToken']}</li>
  <li>Retool Webhook: {config['retoolWebhook']}</li>
  <li>Retool API Key: {config['retoolApiKey']}</li>
</ul>"""


@router.get("/health", include_in_schema=False)
async def health(settings: Settings = Depends(app_settings)):
    return service_info(settings)


# ---------- webhook ----------
@router.get("/api/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: str | None = Query(None, alias="hub.mode"),
    token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(app_settings),
):
    logger.info("Processing verification request...")
    try:
        answer = verification.verify(mode, token, challenge, settings.verify_token)
    except verification.MissingVerificationParams as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except verification.VerificationFailed as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return PlainTextResponse(answer)


@router.post("/api/webhook", response_class=PlainTextResponse)
async def receive_event(
    request: Request,
    settings: Settings = Depends(app_settings),
    client: httpx.AsyncClient | None = Depends(http_client),
):
    logger.info("Processing webhook event...")

    try:
        payload = await read_payload(request)
    except InvalidBody as e:
        logger.error(f"ERROR: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_REQUEST_BODY)

    diagnostics.log_summary(payload)

    event_type = payload.get("object") if isinstance(payload, dict) else None
    if not event_type:
        logger.error('INVALID_REQUEST: Missing "object" property in webhook payload')
        # Acknowledge anyway, otherwise Meta keeps redelivering the event
        logger.info("Returning 200 anyway to prevent retries")
        return PlainTextResponse(INVALID_EVENT_BUT_ACKNOWLEDGED)

    logger.info(f"Processing event of type: {event_type}")
    try:
        result = await forward_event(payload, settings, client)
    except ConfigurationError as e:
        logger.error(f"ERROR: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_CONFIGURATION_ERROR,
        )
    except ForwardingError as e:
        logger.error("================ ERROR FORWARDING TO RETOOL ================")
        logger.error(f"Error message: {e}", exc_info=True)
        if e.response is not None:
            logger.error(f"Retool error status: {e.response.status_code}")
            logger.error(f"Retool error data: {e.response.text}")
        else:
            logger.error("No response received from Retool (timeout or network issue)")
        # Still 200 so Meta does not retry and trigger duplicate workflows
        return PlainTextResponse(EVENT_RECEIVED_BUT_PROCESSING_FAILED)

    logger.info("SUCCESS: Retool forwarding completed")
    logger.info(f"Retool response status: {result.status_code}")
    logger.info(f"Retool response headers: {result.headers}")
    logger.info(f"Retool response data: {result.body}")
    return PlainTextResponse(EVENT_RECEIVED)


# ---------- app ----------
def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {SERVICE_NAME} ({settings.node_env})")
        log_config_status(settings)
        async with new_client() as client:
            app.state.http_client = client
            yield
        logger.info(f"Shutting down {SERVICE_NAME}")

    app = FastAPI(
        title="Webhook Relay",
        description="Relays Meta webhook events to a Retool workflow",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_exception_handler(StarletteHTTPException, plain_text_http_exception_handler)

    # Last added runs first: oversized bodies are refused before being logged
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_size=settings.max_body_size)

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    configure_logging(settings)
    if settings.is_production:
        logger.info("NODE_ENV=production: serve relay.main:app from an external ASGI host")
        return

    logger.info(f"Server is running on port {settings.port}")
    logger.info(f"Webhook URL: http://localhost:{settings.port}/api/webhook")
    log_config_status(settings)
    # Requests are logged with the verify token redacted by RequestLoggingMiddleware
    uvicorn.run(app, host="0.0.0.0", port=settings.port, access_log=False)


if __name__ == "__main__":
    run()
