# app/main.py
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.schemas import ChatReply, ErrorBody
from app.services.exchange import ExchangeError, ExchangeGateway
from app.services.gemini_provider import GeminiProvider

settings = get_settings()

logging.basicConfig(level=settings.log_level, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger(__name__)

# --- FastAPI App Initialization ---
app = FastAPI(title="AC-Komputer AI API")

# --- CORS Configuration ---
# Allows the chat frontend to communicate with this backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Gateway Dependency ---
@lru_cache(maxsize=1)
def get_gateway() -> ExchangeGateway:
    logger.info("Gateway config: model=%s key_set=%s", settings.gemini_model, bool(settings.gemini_api_key))
    return ExchangeGateway(
        api_key=settings.gemini_api_key,
        provider_factory=lambda key: GeminiProvider(
            key, settings.gemini_model, timeout=settings.gemini_timeout_seconds
        ),
        timeout=settings.gemini_timeout_seconds,
    )


# --- Exception Handlers ---
@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError):
    body = ErrorBody(message=exc.message, error=exc.error)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = ErrorBody(message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


# --- API Endpoints ---
@app.get("/")
def read_root():
    return {"Hello": "Welcome to the AC-Komputer AI API"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/chat", response_model=ChatReply)
async def chat_handler(request: Request, gateway: ExchangeGateway = Depends(get_gateway)):
    """
    Relays the full conversation history to Gemini and returns its reply
    in the same message shape.
    """
    try:
        body = await request.json()
    except ValueError:
        raise ExchangeError(400, "Conversation history is required and must be an array.")

    reply = await gateway.exchange(body)
    return ChatReply(reply=reply)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
