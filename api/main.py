import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import config
from core.db import Database
from core.errors import DuplicateKeyError, InvalidArgument, StoreError, ValidationError
from verses import router as verses_router
from verses.repository import VerseRepository
from verses.service import VerseService

logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One store client per process, handed to the service explicitly.
    db = Database()
    await db.open()
    app.state.verse_service = VerseService(VerseRepository(db), max_page_limit=config.max_page_limit())
    try:
        yield
    finally:
        await db.close()


app = FastAPI(lifespan=lifespan)

# Allow local frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def handle_validation_error(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": exc.message, "field": exc.field},
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed path/query/body values get the same 400 shape as domain validation.
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": first.get("msg", "Invalid request."), "field": ".".join(location) or None},
    )


@app.exception_handler(DuplicateKeyError)
async def handle_duplicate_key(_: Request, exc: DuplicateKeyError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"message": str(exc)})


@app.exception_handler(InvalidArgument)
async def handle_invalid_argument(_: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store_error path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Database error, please retry later."},
    )


app.include_router(verses_router.router, tags=["verses"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "bhagwat-gita verses api"}
