import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings
from errors import StoreUnavailableError, StorefrontError
from logger import get_logger
from models import (
    CheckoutRequest, CheckoutResponse, MessageResponse,
    Order, OrderCreate, OrderCreateResponse
)
from repository import DisconnectedRepository, create_repository
from service import InventoryService

logger = get_logger(__name__)

_INVALID_BODY_MESSAGES = {
    "/checkout": "Invalid cart data",
    "/orders": "Invalid order data",
}


def get_service(request: Request) -> InventoryService:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        repository = DisconnectedRepository("store not initialized")
    return InventoryService(repository)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 🔌 Connect on startup, release on shutdown
    settings = app.state.settings
    if getattr(app.state, "repository", None) is None:
        app.state.repository = create_repository(settings)
    repository = app.state.repository
    try:
        repository.ping()
        logger.info("Connected to store", extra={"backend": repository.backend})
    except StoreUnavailableError as e:
        logger.error(f"Store connection failed: {e}", extra={"backend": repository.backend})
    yield
    repository.close()
    logger.info("Store connection closed", extra={"backend": repository.backend})


def create_app(settings: Settings = None, repository=None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(title="Afterschool Lessons API", lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = repository

    # 🔐 CORS for the storefront frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 📝 Request log
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response

    # ⚠️ Every error leaves as {"message": ...}
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == 404 and message == "Not Found":
            message = "Route not found"
        return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = _INVALID_BODY_MESSAGES.get(request.url.path, "Invalid request data")
        logger.info(
            f"{message}: {jsonable_encoder(exc.errors())}",
            extra={"method": request.method, "path": request.url.path, "status": 400},
        )
        return JSONResponse(status_code=400, content={"message": message})

    # 🎯 1. HEALTH
    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "✅ Backend running successfully!"

    # 🎯 2. LIST LESSONS
    @app.get("/lessons")
    def list_lessons(service: InventoryService = Depends(get_service)):
        try:
            lessons = service.list_lessons()
        except StoreUnavailableError:
            raise HTTPException(status_code=500, detail="Error fetching lessons")
        return [lesson.model_dump(by_alias=True) for lesson in lessons]

    # 🎯 3. CHECKOUT — take seats
    @app.post("/checkout", response_model=CheckoutResponse)
    def checkout(body: CheckoutRequest, service: InventoryService = Depends(get_service)):
        try:
            items = service.submit_checkout(body.cart)
        except StoreUnavailableError:
            raise HTTPException(status_code=500, detail="Checkout failed")
        return {"message": "Checkout successful!", "items": items}

    # 🎯 4. PLACE ORDER
    @app.post("/orders", status_code=201, response_model=OrderCreateResponse)
    def create_order(body: OrderCreate, service: InventoryService = Depends(get_service)):
        try:
            order_id = service.submit_order(body.name, body.phone, body.lessons)
        except StoreUnavailableError:
            raise HTTPException(status_code=500, detail="Order failed")
        return {"message": "✅ Order created successfully", "orderId": order_id}

    # 🎯 5. FETCH ORDER
    @app.get("/orders/{order_id}", response_model=Order)
    def get_order(order_id: str, service: InventoryService = Depends(get_service)):
        try:
            return service.get_order(order_id)
        except StoreUnavailableError:
            raise HTTPException(status_code=500, detail="Error fetching order")

    # 🎯 6. UPDATE LESSON
    @app.put("/lessons/{lesson_id}", response_model=MessageResponse)
    def update_lesson(
        lesson_id: str,
        fields: Dict[str, Any] = Body(...),
        service: InventoryService = Depends(get_service),
    ):
        try:
            service.update_lesson_fields(lesson_id, fields)
        except StoreUnavailableError:
            raise HTTPException(status_code=500, detail="Lesson update failed")
        return {"message": "✅ Lesson updated successfully"}

    # 🖼️ Static lesson images
    images_root = Path(settings.images_dir).resolve()

    @app.get("/images/{image_path:path}")
    def get_image(image_path: str):
        target = (images_root / image_path).resolve()
        if images_root not in target.parents or not target.is_file():
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(target)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)
