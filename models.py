from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class Lesson(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # subject, location, price and image ride along as extra fields
    id: str = Field(alias="_id")
    spaces: int = 0


class CartItem(BaseModel):
    id: str
    qty: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    cart: List[CartItem] = Field(min_length=1)


class CheckoutItemResult(BaseModel):
    id: str
    qty: int
    status: str  # "fulfilled" or "skipped"
    reason: Optional[str] = None  # "not_found" / "insufficient_stock"


class CheckoutResponse(BaseModel):
    message: str
    items: List[CheckoutItemResult] = []


class OrderLine(BaseModel):
    lessonId: str = Field(min_length=1)
    qty: int = Field(ge=1)


class OrderCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    lessons: List[OrderLine] = Field(min_length=1)


class OrderCreateResponse(BaseModel):
    message: str
    orderId: str


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    phone: str
    lessons: List[OrderLine]
    createdAt: str


class MessageResponse(BaseModel):
    message: str
