# poufmaker/schemas.py
# Pydantic-схемы запросов и ответов.
# Снаружи поля в camelCase (userId, fullName, imageUrl, ...), внутри snake_case.
# Схемы частичных обновлений запрещают неизвестные поля.
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from poufmaker.models.bid import BidStatus
from poufmaker.models.product import ProductStatus
from poufmaker.models.user import RoleEnum


def _as_utc(value: datetime) -> datetime:
    # в БД время хранится naive UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class StrictCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True, extra="forbid"
    )


# ---------- auth ----------

class RegisterInput(CamelModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    role: RoleEnum = RoleEnum.client


class LoginInput(CamelModel):
    email: EmailStr
    password: str


class ResetRequestInput(CamelModel):
    email: EmailStr


class ResetPasswordInput(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str


class UserRef(CamelModel):
    id: str
    full_name: str
    email: str


class UserOut(CamelModel):
    id: str
    email: str
    full_name: str
    role: RoleEnum


class RegisterOut(CamelModel):
    message: str
    user_id: str


class LoginOut(CamelModel):
    token: str
    user: UserOut


class MessageOut(CamelModel):
    message: str


# ---------- products ----------

class ProductCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    status: ProductStatus = ProductStatus.ai_generated


class ProductUpdate(StrictCamelModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    status: Optional[ProductStatus] = None


class BidSummary(CamelModel):
    id: str
    amount: float
    status: BidStatus
    notes: Optional[str] = None
    created_at: UtcDatetime
    upholsterer: UserRef


class ProductOut(CamelModel):
    id: str
    title: str
    description: str
    price: Optional[float] = None
    image_url: Optional[str] = None
    status: ProductStatus
    creator_id: str
    manufacturer_id: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    creator: UserRef
    manufacturer: Optional[UserRef] = None
    bids: List[BidSummary] = []


# ---------- bids ----------

class BidCreate(CamelModel):
    product_id: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    notes: Optional[str] = None


class BidUpdate(StrictCamelModel):
    amount: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None
    status: Optional[BidStatus] = None


class ProductRef(CamelModel):
    id: str
    title: str
    status: ProductStatus
    creator: UserRef


class BidOut(CamelModel):
    id: str
    product_id: str
    upholsterer_id: str
    amount: float
    notes: Optional[str] = None
    status: BidStatus
    created_at: UtcDatetime
    updated_at: UtcDatetime
    product: ProductRef
    upholsterer: UserRef


# ---------- conversations ----------

class ConversationCreate(CamelModel):
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    initial_message: Optional[str] = None


class MessageCreate(CamelModel):
    content: Optional[str] = None
    is_user: bool = True


class ChatMessageOut(CamelModel):
    id: str
    conversation_id: str
    content: str
    is_user: bool
    created_at: UtcDatetime


class ConversationOut(CamelModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_phone: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    user: Optional[UserRef] = None
    messages: List[ChatMessageOut] = []


class ConversationCreated(CamelModel):
    conversation: ConversationOut
    message: ChatMessageOut
